"""
Data models describing an exported bundle's metadata.json.

Per-platform values are kept as ordered tuples of (platform, value) pairs in
the order the exporter wrote them, so iteration order never depends on a
dynamic mapping.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple


class Platform(str, Enum):
    """Platforms an export can target."""

    ANDROID = "android"
    IOS = "ios"
    WEB = "web"

    @classmethod
    def values(cls) -> List[str]:
        return [platform.value for platform in cls]


# Value accepted by --platform meaning "every exported platform"
ALL_PLATFORMS = "all"


@dataclass(frozen=True)
class AssetDescriptor:
    """
    One asset listed for a platform in metadata.json.

    Attributes:
        path: Path of the exported asset, relative to the export directory
        ext: File extension reported by the bundler (with or without '.')
    """

    path: str
    ext: str


@dataclass(frozen=True)
class PlatformFileMetadata:
    """
    Files exported for a single platform.

    Attributes:
        bundle: Path of the JavaScript bundle, relative to the export directory
        assets: Assets referenced by the bundle
    """

    bundle: str
    assets: Tuple[AssetDescriptor, ...] = ()


@dataclass(frozen=True)
class Metadata:
    """
    Validated contents of metadata.json.

    Attributes:
        version: Metadata format version (only 0 is supported)
        bundler: Bundler that produced the export (only "metro" is supported)
        file_metadata: Ordered (platform, files) pairs
    """

    version: int
    bundler: str
    file_metadata: Tuple[Tuple[Platform, PlatformFileMetadata], ...] = field(default=())

    @property
    def platforms(self) -> List[Platform]:
        return [platform for platform, _ in self.file_metadata]

    def get(self, platform: Platform) -> Optional[PlatformFileMetadata]:
        for candidate, files in self.file_metadata:
            if candidate == platform:
                return files
        return None

    def __iter__(self) -> Iterator[Tuple[Platform, PlatformFileMetadata]]:
        return iter(self.file_metadata)
