"""Abstract segmentation interface and parameter definitions."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from nucring.core.config import SUPPORTED_THRESHOLD_METHODS
from nucring.core.exceptions import ConfigurationError
from nucring.core.models import RasterImage, RegionKind, RegionSet
from nucring.segment.label_processor import LabelProcessor

if TYPE_CHECKING:
    from nucring.core.config import AnalysisConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentationParams:
    """Parameters for nuclear segmentation.

    Attributes:
        block_size: CLAHE tile size in pixels.
        local_radius: Adaptive-threshold window radius in pixels.
        min_area: Smallest accepted nucleus area in µm².
        max_area: Largest accepted nucleus area in µm².
        blur_sigma: Gaussian sigma (pixels) applied after contrast enhancement.
        clip_limit: CLAHE clip limit.
        threshold_method: "phansalkar" (default) or "sauvola".
        k: Weight of the local standard deviation term.
        r: Dynamic range of the standard deviation (image scaled to [0, 1]).
        p: Phansalkar exponential weight (ignored by "sauvola").
        q: Phansalkar exponential decay (ignored by "sauvola").
        min_distance: Minimum spacing of watershed seeds in pixels.
            None = radius of a disk of ``min_area``.
    """

    block_size: int = 127
    local_radius: int = 15
    min_area: float = 30.0
    max_area: float = 500.0
    blur_sigma: float = 2.0
    clip_limit: float = 0.01
    threshold_method: str = "phansalkar"
    k: float = 0.25
    r: float = 0.5
    p: float = 2.0
    q: float = 10.0
    min_distance: int | None = None

    def __post_init__(self) -> None:
        """Validate parameters."""
        if self.block_size <= 0:
            raise ConfigurationError("block_size", f"must be > 0, got {self.block_size}")
        if self.local_radius <= 0:
            raise ConfigurationError("local_radius", f"must be > 0, got {self.local_radius}")
        if self.min_area <= 0 or self.max_area <= 0:
            raise ConfigurationError("min_area", "area bounds must be > 0")
        if self.min_area > self.max_area:
            raise ConfigurationError("min_area", f"{self.min_area} > max_area {self.max_area}")
        if self.threshold_method not in SUPPORTED_THRESHOLD_METHODS:
            raise ConfigurationError(
                "threshold_method", f"unknown method {self.threshold_method!r}"
            )
        if self.r <= 0:
            raise ConfigurationError("r", f"must be > 0, got {self.r}")

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> SegmentationParams:
        return cls(
            block_size=config.block_size,
            local_radius=config.local_radius,
            min_area=config.min_area,
            max_area=config.max_area,
            blur_sigma=config.blur_sigma,
            clip_limit=config.clip_limit,
            threshold_method=config.threshold_method,
            k=config.k,
            r=config.r,
            p=config.p,
            q=config.q,
            min_distance=config.min_distance,
        )

    def area_bounds_px(self, pixel_size_um: float) -> tuple[float, float]:
        """Area bounds converted to pixel counts."""
        px_area = pixel_size_um ** 2
        return (self.min_area / px_area, self.max_area / px_area)

    def seed_distance_px(self, pixel_size_um: float) -> int:
        if self.min_distance is not None:
            return self.min_distance
        min_px, _ = self.area_bounds_px(pixel_size_um)
        return max(1, int(math.sqrt(min_px / math.pi)))


class BaseSegmenter(ABC):
    """Abstract interface for nuclear segmentation backends.

    Concrete implementations (e.g., NuclearSegmenter) must implement
    ``segment()``.
    """

    @abstractmethod
    def segment(
        self, image: np.ndarray, params: SegmentationParams, pixel_size_um: float = 1.0,
    ) -> np.ndarray:
        """Run segmentation on a 2D image.

        Args:
            image: 2D array (Y, X) of the nuclear channel.
            params: Segmentation parameters.
            pixel_size_um: Physical pixel size used for area conversion.

        Returns:
            Label image (Y, X) as int32 where pixel value = object ID, 0 = background.
        """

    def detect(self, raster: RasterImage, params: SegmentationParams) -> RegionSet:
        """Segment a nuclear raster into an ordinal-indexed nucleus RegionSet.

        Labels from ``segment()`` are filtered by area and border contact and
        numbered by ``LabelProcessor``. An image without accepted nuclei
        yields an empty RegionSet.
        """
        labels = self.segment(raster.data, params, raster.pixel_size_um)
        nuclei = LabelProcessor().extract_regions(
            labels,
            source=raster.source,
            kind=RegionKind.NUCLEUS,
            pixel_size_um=raster.pixel_size_um,
            area_bounds=params.area_bounds_px(raster.pixel_size_um),
        )
        logger.info(
            "%s: %d nuclei accepted of %d candidates",
            raster.source, len(nuclei), int(labels.max()),
        )
        return nuclei
