"""
Publish profile loader and validator.

Loads YAML publish profiles so repeated publishes (for example from CI) do
not have to repeat every command-line flag. Command-line flags always win
over profile values.

Example profile (publish.yaml):
    ```yaml
    version: "1.0"
    project_id: 0d9b6c4e-2a34-4c1b-9f5e-8f7d0f0e9a11
    input_dir: dist
    platform: all

    api_url: https://api.expo.dev/graphql
    ```

Usage:
    >>> from src.utils.config_loader import load_profile, validate_profile
    >>> profile = load_profile("publish.yaml")
    >>> errors = validate_profile(profile)
    >>> if not errors:
    ...     print(f"Publishing {profile['input_dir']}")
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from src.utils.logging import get_logger

logger = get_logger(__name__)


# Supported profile versions
SUPPORTED_VERSIONS = ["1.0"]

# Values accepted by the `platform` key
VALID_PLATFORM_FLAGS = ["android", "ios", "web", "all"]

KNOWN_KEYS = ["version", "project_id", "input_dir", "platform", "api_url", "skip_bundler"]


@dataclass
class ConfigError:
    """Validation error in a profile file."""

    field: str
    message: str
    value: Optional[Any] = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value})"
        return f"{self.field}: {self.message}"


def load_profile(profile_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a publish profile from a YAML file.

    Args:
        profile_path: Path to YAML profile

    Returns:
        Dictionary containing the parsed profile

    Raises:
        FileNotFoundError: If the profile doesn't exist
        ValueError: If the path is not a file, the file is empty, or the
            document is not a mapping
        yaml.YAMLError: If YAML is malformed
    """
    path = Path(profile_path)
    logger.info(f"Loading publish profile from: {path}")

    if not path.exists():
        raise FileNotFoundError(f"Profile file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Profile path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            profile = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise

    if profile is None:
        raise ValueError("Profile file is empty")

    if not isinstance(profile, dict):
        raise ValueError(f"Profile must be a mapping, got {type(profile).__name__}")

    logger.info(f"Profile loaded for project: {profile.get('project_id', 'unknown')}")
    return dict(profile)


def validate_profile(profile: Dict[str, Any]) -> List[ConfigError]:
    """
    Validate a publish profile.

    Args:
        profile: Profile dictionary to validate

    Returns:
        List of validation errors (empty if valid)

    Example:
        >>> errors = validate_profile({"version": "1.0", "project_id": "abc"})
        >>> errors
        []
    """
    errors: List[ConfigError] = []

    if "version" not in profile:
        errors.append(ConfigError("version", "Missing required field"))
    elif str(profile["version"]) not in SUPPORTED_VERSIONS:
        errors.append(
            ConfigError(
                "version",
                f"Unsupported version (supported: {SUPPORTED_VERSIONS})",
                profile["version"],
            )
        )

    if "project_id" not in profile:
        errors.append(ConfigError("project_id", "Missing required field"))
    elif not isinstance(profile["project_id"], str) or not profile["project_id"].strip():
        errors.append(ConfigError("project_id", "Must be a non-empty string", profile["project_id"]))

    for key in ("input_dir", "api_url"):
        if key in profile and not isinstance(profile[key], str):
            errors.append(ConfigError(key, "Must be a string", type(profile[key]).__name__))

    if "platform" in profile and profile["platform"] not in VALID_PLATFORM_FLAGS:
        errors.append(
            ConfigError(
                "platform",
                f"Invalid platform (valid: {VALID_PLATFORM_FLAGS})",
                profile["platform"],
            )
        )

    if "skip_bundler" in profile and not isinstance(profile["skip_bundler"], bool):
        errors.append(
            ConfigError("skip_bundler", "Must be a boolean", type(profile["skip_bundler"]).__name__)
        )

    for key in profile:
        if key not in KNOWN_KEYS:
            logger.warning(f"Ignoring unknown profile key: {key}")

    if errors:
        logger.warning(f"Profile validation failed with {len(errors)} errors")
    else:
        logger.debug("Profile validation passed")

    return errors
