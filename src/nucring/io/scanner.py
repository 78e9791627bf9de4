"""Directory walking and C<n>- channel-prefix grouping."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

CHANNEL_PREFIX_RE = re.compile(r"^C(\d+)-(.+)$")


@dataclass(frozen=True)
class ImageGroup:
    """All files belonging to one source image.

    Attributes:
        basename: Original image name with the suffix stripped.
        channels: Channel index -> single-channel file (``C<n>-<basename>``).
        composite: Unsplit multi-channel file, if one was found instead.
    """

    basename: str
    channels: dict[int, Path] = field(default_factory=dict)
    composite: Path | None = None

    @property
    def filename(self) -> str:
        """Name reported in the Filename column."""
        if self.composite is not None:
            return self.composite.name
        return self.basename


class ChannelScanner:
    """Scans a directory tree for channel files with a given suffix.

    Files named ``C<n>-<basename><suffix>`` are grouped by basename. Files
    without a channel prefix are treated as multi-channel composites that the
    pipeline splits in memory.
    """

    def __init__(self, file_suffix: str = ".tif") -> None:
        self.file_suffix = file_suffix

    def scan(self, path: Path) -> list[ImageGroup]:
        """Group the files under ``path`` by source image.

        Returns:
            Image groups sorted by basename (the traversal order).

        Raises:
            FileNotFoundError: If path does not exist.
            ValueError: If path is not a directory.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Source path does not exist: {path}")
        if not path.is_dir():
            raise ValueError(f"Source path is not a directory: {path}")

        channels: dict[str, dict[int, Path]] = {}
        composites: dict[str, Path] = {}
        for file in self._find_files(path):
            basename = self._strip_suffix(file.name)
            m = CHANNEL_PREFIX_RE.match(basename)
            if m:
                index, base = int(m.group(1)), m.group(2)
                channels.setdefault(base, {})[index] = file
            else:
                composites[basename] = file

        groups: list[ImageGroup] = []
        for basename in sorted(set(channels) | set(composites)):
            if basename in channels:
                groups.append(ImageGroup(basename, dict(sorted(channels[basename].items()))))
            else:
                groups.append(ImageGroup(basename, composite=composites[basename]))
        return groups

    def _strip_suffix(self, name: str) -> str:
        if name.lower().endswith(self.file_suffix.lower()):
            return name[: len(name) - len(self.file_suffix)]
        return name

    def _find_files(self, path: Path) -> list[Path]:
        """Walk directory tree for files with the configured suffix.

        Symlinks are skipped to prevent directory escape and circular loops.
        """
        results = []
        suffix = self.file_suffix.lower()
        for child in sorted(path.rglob("*")):
            if child.is_symlink():
                continue
            if child.is_file() and child.name.lower().endswith(suffix):
                results.append(child)
        return results
