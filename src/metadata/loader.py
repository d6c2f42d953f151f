"""
metadata.json loading and validation.

The exporter writes a metadata.json describing, per platform, the bundle
file and the assets it references:

    {
      "version": 0,
      "bundler": "metro",
      "fileMetadata": {
        "ios": {
          "bundle": "bundles/ios-4fe3891dcaca43901bd8797db78405e4.js",
          "assets": [{"path": "assets/2f334f6c7ca5b2a504bdf8acdee104f3", "ext": "png"}]
        }
      }
    }

The file is checked against a fixed schema first (every problem is
reported at once), then version and bundler are checked separately so the
error names exactly what is unsupported.

Example usage:
    >>> from src.metadata import load_metadata
    >>> metadata = load_metadata("dist")
    >>> [p.value for p in metadata.platforms]
    ['ios', 'android']
"""

import json
from pathlib import Path
from typing import Any, List, Tuple, Union

from src.errors import NotFoundError, ValidationError
from src.metadata.models import (
    ALL_PLATFORMS,
    AssetDescriptor,
    Metadata,
    Platform,
    PlatformFileMetadata,
)
from src.utils.config_loader import ConfigError
from src.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)

METADATA_FILENAME = "metadata.json"
SUPPORTED_METADATA_VERSION = 0
SUPPORTED_BUNDLER = "metro"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_string(field_path: str, value: Any) -> List[ConfigError]:
    if not isinstance(value, str):
        return [ConfigError(field_path, "Must be a string", type(value).__name__)]
    if not value:
        return [ConfigError(field_path, "Must not be empty")]
    return []


def _check_unknown_keys(prefix: str, value: dict, allowed: Tuple[str, ...]) -> List[ConfigError]:
    return [
        ConfigError(f"{prefix}.{key}" if prefix else str(key), "Unknown field")
        for key in value
        if key not in allowed
    ]


def _validate_file_metadata(platform: str, files: Any) -> List[ConfigError]:
    """Validate one platform entry of fileMetadata."""
    prefix = f"fileMetadata.{platform}"
    errors: List[ConfigError] = []

    if not isinstance(files, dict):
        errors.append(ConfigError(prefix, "Must be an object", type(files).__name__))
        return errors

    errors.extend(_check_unknown_keys(prefix, files, ("bundle", "assets")))

    if "bundle" not in files:
        errors.append(ConfigError(f"{prefix}.bundle", "Missing required field"))
    else:
        errors.extend(_check_string(f"{prefix}.bundle", files["bundle"]))

    if "assets" not in files:
        errors.append(ConfigError(f"{prefix}.assets", "Missing required field"))
        return errors

    assets = files["assets"]
    if not isinstance(assets, list):
        errors.append(ConfigError(f"{prefix}.assets", "Must be a list", type(assets).__name__))
        return errors

    for i, asset in enumerate(assets):
        asset_prefix = f"{prefix}.assets[{i}]"
        if not isinstance(asset, dict):
            errors.append(ConfigError(asset_prefix, "Must be an object", type(asset).__name__))
            continue
        errors.extend(_check_unknown_keys(asset_prefix, asset, ("path", "ext")))
        for key in ("path", "ext"):
            if key not in asset:
                errors.append(ConfigError(f"{asset_prefix}.{key}", "Missing required field"))
            else:
                errors.extend(_check_string(f"{asset_prefix}.{key}", asset[key]))

    return errors


def validate_metadata_schema(payload: Any) -> List[ConfigError]:
    """
    Validate a parsed metadata.json document against the fixed schema.

    Only shape and types are checked here; supported version and bundler
    values are enforced by load_metadata. String fields must be non-empty
    and fields outside the schema are rejected at every level.

    Args:
        payload: Parsed JSON document

    Returns:
        List of schema errors (empty if the document is well formed)
    """
    if not isinstance(payload, dict):
        return [ConfigError("metadata", "Must be an object", type(payload).__name__)]

    errors = _check_unknown_keys("", payload, ("version", "bundler", "fileMetadata"))

    if "version" not in payload:
        errors.append(ConfigError("version", "Missing required field"))
    elif not _is_number(payload["version"]):
        errors.append(ConfigError("version", "Must be a number", type(payload["version"]).__name__))

    if "bundler" not in payload:
        errors.append(ConfigError("bundler", "Missing required field"))
    else:
        errors.extend(_check_string("bundler", payload["bundler"]))

    if "fileMetadata" not in payload:
        errors.append(ConfigError("fileMetadata", "Missing required field"))
        return errors

    file_metadata = payload["fileMetadata"]
    if not isinstance(file_metadata, dict):
        errors.append(
            ConfigError("fileMetadata", "Must be an object", type(file_metadata).__name__)
        )
        return errors

    for platform, files in file_metadata.items():
        if platform not in Platform.values():
            errors.append(
                ConfigError(
                    f"fileMetadata.{platform}",
                    f"Unknown platform (valid: {Platform.values()})",
                )
            )
            continue
        errors.extend(_validate_file_metadata(platform, files))

    return errors


@log_function_call
def load_metadata(dist_root: Union[str, Path]) -> Metadata:
    """
    Read and validate metadata.json from an export directory.

    Args:
        dist_root: Export directory containing metadata.json

    Returns:
        Validated Metadata

    Raises:
        NotFoundError: If metadata.json does not exist
        ValidationError: If the file is not valid JSON, does not match the
            schema, or declares an unsupported version or bundler

    Example:
        >>> metadata = load_metadata("dist")
        >>> metadata.bundler
        'metro'
    """
    metadata_path = Path(dist_root) / METADATA_FILENAME

    if not metadata_path.is_file():
        raise NotFoundError(
            f"{METADATA_FILENAME} not found in {dist_root}. "
            f"Export the project before publishing."
        )

    try:
        payload = json.loads(metadata_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"{metadata_path} is not valid JSON: {e}") from e

    errors = validate_metadata_schema(payload)
    if errors:
        issues = [str(error) for error in errors]
        raise ValidationError(
            f"Invalid {METADATA_FILENAME}: " + "; ".join(issues),
            issues=issues,
        )

    # Checked separately from the schema so the message names the problem
    if payload["version"] != SUPPORTED_METADATA_VERSION:
        raise ValidationError("Only bundles with metadata version 0 are supported")
    if payload["bundler"] != SUPPORTED_BUNDLER:
        raise ValidationError("Only bundles created with Metro are currently supported")

    file_metadata: List[Tuple[Platform, PlatformFileMetadata]] = []
    for platform, files in payload["fileMetadata"].items():
        file_metadata.append(
            (
                Platform(platform),
                PlatformFileMetadata(
                    bundle=files["bundle"],
                    assets=tuple(
                        AssetDescriptor(path=asset["path"], ext=asset["ext"])
                        for asset in files["assets"]
                    ),
                ),
            )
        )

    metadata = Metadata(
        version=payload["version"],
        bundler=payload["bundler"],
        file_metadata=tuple(file_metadata),
    )

    platform_names = [platform.value for platform in metadata.platforms]
    if not platform_names:
        logger.warning("No updates were exported for any platform")
    logger.debug(f"Loaded {len(platform_names)} platform(s): {', '.join(platform_names)}")

    return metadata


def filter_exported_platforms_by_flag(metadata: Metadata, platform_flag: str) -> Metadata:
    """
    Restrict metadata to the platform requested on the command line.

    Args:
        metadata: Validated metadata
        platform_flag: A platform name, or "all"

    Returns:
        Metadata containing only the requested platform ("all" returns the
        input unchanged)

    Raises:
        NotFoundError: If the requested platform was not exported
    """
    if platform_flag == ALL_PLATFORMS:
        return metadata

    available = ", ".join(platform.value for platform in metadata.platforms)
    try:
        platform = Platform(platform_flag)
    except ValueError:
        platform = None

    files = metadata.get(platform) if platform is not None else None
    if files is None:
        raise NotFoundError(
            f'--platform="{platform_flag}" not found in {METADATA_FILENAME}. '
            f"Available platform(s): {available}"
        )

    return Metadata(
        version=metadata.version,
        bundler=metadata.bundler,
        file_metadata=((platform, files),),
    )
