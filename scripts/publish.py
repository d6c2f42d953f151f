#!/usr/bin/env python3
"""
Publish the assets of an exported bundle to the asset store.

CLI wrapper for the publisher pipeline: loads metadata.json from the export
directory, collects and deduplicates assets across platforms, and uploads
whatever the asset store does not have yet.

Usage:
    python scripts/publish.py --project-id <id>
    python scripts/publish.py --project-id <id> --input-dir dist --platform ios
    python scripts/publish.py --profile publish.yaml
"""

import argparse
import signal
import sys
import threading
import uuid
from pathlib import Path
from typing import Any, Dict

# Add src to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from src.api import AssetStoreClient  # noqa: E402
from src.assets import collect_assets, resolve_input_directory  # noqa: E402
from src.errors import PublishCancelledError, PublishError  # noqa: E402
from src.metadata import ALL_PLATFORMS, filter_exported_platforms_by_flag, load_metadata  # noqa: E402
from src.publisher import PublishSettings, upload_assets  # noqa: E402
from src.utils.config import get_config  # noqa: E402
from src.utils.config_loader import load_profile, validate_profile  # noqa: E402
from src.utils.logging import get_logger, set_correlation_id, setup_logging  # noqa: E402

logger = get_logger(__name__)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Publish exported update assets to the asset store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Publish every platform found in dist/metadata.json
  %(prog)s --project-id 0d9b6c4e-1234-5678-9abc-def012345678

  # Publish a single platform from another export directory
  %(prog)s --project-id <id> --input-dir build --platform android

  # Read project and input directory from a YAML profile
  %(prog)s --profile publish.yaml
        """,
    )

    parser.add_argument(
        "--project-id",
        help="Project whose asset limit applies (default: from profile)",
    )

    parser.add_argument(
        "-i",
        "--input-dir",
        help="Directory the bundle was exported to (default: dist)",
    )

    parser.add_argument(
        "-p",
        "--platform",
        choices=["android", "ios", "web", ALL_PLATFORMS],
        help="Platform to publish (default: all)",
    )

    parser.add_argument(
        "--profile",
        help="YAML publish profile; command-line flags override it",
    )

    parser.add_argument(
        "--skip-bundler",
        action="store_true",
        help="The bundle was exported manually before running this command",
    )

    parser.add_argument(
        "--api-url",
        help="Asset store GraphQL endpoint (default: from config)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit structured JSON logs",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    return parser.parse_args()


def resolve_options(args: argparse.Namespace) -> Dict[str, Any]:
    """Merge profile values with command-line flags, flags winning."""
    options: Dict[str, Any] = {
        "project_id": None,
        "input_dir": "dist",
        "platform": ALL_PLATFORMS,
        "api_url": None,
        "skip_bundler": False,
    }

    if args.profile:
        profile = load_profile(args.profile)
        errors = validate_profile(profile)
        if errors:
            raise ValueError(
                "Invalid profile:\n" + "\n".join(f"  - {error}" for error in errors)
            )
        for key in options:
            if key in profile:
                options[key] = profile[key]

    for key in options:
        value = getattr(args, key)
        if value:
            options[key] = value

    return options


def print_progress(total: int, missing: int) -> None:
    print(f"   {total - missing}/{total} asset(s) available in the store")


def install_cancel_handler(cancel_event: threading.Event):
    """
    Route the first Ctrl-C to cancel_event so the pipeline can stop cleanly.

    A second Ctrl-C raises KeyboardInterrupt as usual.

    Returns:
        The previous SIGINT handler, for restoring afterwards
    """

    def _handle_interrupt(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Interrupt received, cancelling publish")
        print("\n⚠️  Cancelling... press Ctrl-C again to abort immediately")
        cancel_event.set()

    return signal.signal(signal.SIGINT, _handle_interrupt)


def main():
    """Main entry point for publish CLI."""
    args = parse_args()

    setup_logging(level="DEBUG" if args.verbose else "INFO", json_format=args.json_logs or None)
    set_correlation_id(uuid.uuid4().hex[:12])

    try:
        options = resolve_options(args)
    except (OSError, ValueError) as e:
        print(f"❌ Profile error: {e}")
        return 1

    if not options["project_id"]:
        print("❌ --project-id is required (or set project_id in a profile)")
        return 1

    # Load environment configuration
    try:
        env_config = get_config()
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        print("\nMake sure .env file exists with required variables:")
        print("  - ASSET_STORE_ACCESS_TOKEN")
        return 1

    api_url = options["api_url"] or env_config.api_url
    logger.info(f"Using asset store: {api_url}")

    cancel_event = threading.Event()
    previous_handler = install_cancel_handler(cancel_event)

    try:
        dist_root = resolve_input_directory(options["input_dir"], options["skip_bundler"])
        metadata = filter_exported_platforms_by_flag(load_metadata(dist_root), options["platform"])
        collected = collect_assets(dist_root, metadata)

        client = AssetStoreClient(
            api_url,
            access_token=env_config.access_token,
            timeout_seconds=env_config.request_timeout_seconds,
        )

        print(f"📤 Publishing assets for {', '.join(p.value for p in metadata.platforms)}")
        result = upload_assets(
            client,
            collected,
            project_id=options["project_id"],
            progress_callback=print_progress,
            settings=PublishSettings.from_config(env_config),
            cancel_event=cancel_event,
        )

    except (PublishCancelledError, KeyboardInterrupt):
        print("\n⚠️  Publish cancelled by user")
        return 130

    except PublishError as e:
        logger.error(f"Publish failed: {e}")
        print(f"❌ {e}")
        return 1

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        print(f"❌ Unexpected error: {e}")
        return 1

    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print(f"\n📊 Asset Upload Summary:")
    print(f"  Assets: {result.asset_count} ({result.launch_asset_count} bundle(s))")
    print(f"  Unique: {result.unique_asset_count}")
    print(f"  ✅ Uploaded: {result.unique_uploaded_asset_count}")

    if args.verbose and result.unique_uploaded_asset_paths:
        print("\n  Uploaded assets:")
        for path in result.unique_uploaded_asset_paths:
            print(f"  • {path}")

    if result.is_above_warning_threshold:
        print(
            f"\n⚠️  This update group contains {result.unique_uploaded_asset_count} new asset(s); "
            f"the limit is {result.asset_limit_per_update_group} per update group."
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
