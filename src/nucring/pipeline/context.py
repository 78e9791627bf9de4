"""Per-image working set."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nucring.core.exceptions import IOFailure
from nucring.core.models import Measurement, RasterImage, RegionSet
from nucring.io.tiff import load_raster, split_channels

if TYPE_CHECKING:
    from nucring.core.config import AnalysisConfig
    from nucring.io.scanner import ImageGroup

logger = logging.getLogger(__name__)


class ProcessingContext:
    """Rasters, region sets, and measurements of one image.

    Every stage receives the context explicitly. Rasters are loaded on first
    use and released when the ``with`` block exits, whether processing
    succeeded or not.

    Args:
        group: Files of the source image.
        config: Analysis settings (pixel-size override, channel layout).
    """

    def __init__(self, group: ImageGroup, config: AnalysisConfig) -> None:
        self.group = group
        self.config = config
        self.nuclei: RegionSet | None = None
        self.cytoplasm: RegionSet | None = None
        self.measurements: list[Measurement] = []
        self._rasters: dict[int, RasterImage] = {}
        self._composite_loaded = False

    def __enter__(self) -> ProcessingContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    @property
    def source(self) -> str:
        return self.group.basename

    @property
    def filename(self) -> str:
        return self.group.filename

    def available_channels(self) -> list[int]:
        if self.group.composite is not None:
            self._load_composite()
            return sorted(self._rasters)
        return sorted(self.group.channels)

    def require_channels(self, channels: list[int]) -> None:
        """Fail before any work if a companion channel file is missing.

        Raises:
            IOFailure: Naming the first missing channel.
        """
        available = set(self.available_channels())
        for ch in channels:
            if ch not in available:
                raise IOFailure(
                    f"C{ch}-{self.source}",
                    f"channel {ch} missing (found {sorted(available)})",
                )

    def raster(self, channel: int) -> RasterImage:
        """Return the raster for ``channel``, loading it on first use.

        Raises:
            IOFailure: If the channel file is missing or unreadable.
        """
        if channel in self._rasters:
            return self._rasters[channel]
        if self.group.composite is not None:
            self._load_composite()
            if channel not in self._rasters:
                raise IOFailure(str(self.group.composite), f"no channel {channel}")
            return self._rasters[channel]

        path = self.group.channels.get(channel)
        if path is None:
            raise IOFailure(f"C{channel}-{self.source}", "companion channel file not found")
        raster = load_raster(path, self.source, channel, self.config.pixel_size_um)
        self._rasters[channel] = raster
        return raster

    @property
    def pixel_size_um(self) -> float:
        """Pixel size of the nuclear channel.

        The configured override wins, then the size recorded with the nuclei
        (archived nuclei carry it), then the nuclear raster's metadata.
        """
        if self.config.pixel_size_um is not None:
            return self.config.pixel_size_um
        if self.nuclei is not None and self.nuclei.pixel_size_um is not None:
            return self.nuclei.pixel_size_um
        return self.raster(self.config.nuclear_channel).pixel_size_um

    def release(self) -> None:
        """Drop the whole working set."""
        self._rasters.clear()
        self._composite_loaded = False
        self.nuclei = None
        self.cytoplasm = None
        self.measurements = []

    def _load_composite(self) -> None:
        if self._composite_loaded:
            return
        assert self.group.composite is not None
        self._rasters.update(
            split_channels(self.group.composite, self.source, self.config.pixel_size_um)
        )
        self._composite_loaded = True
        logger.debug("%s: split %d channels", self.source, len(self._rasters))
