"""Data models for the nucring core module."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

import numpy as np


class RegionKind(str, Enum):
    """Kind of a detected or derived region."""

    NUCLEUS = "nucleus"
    CYTOPLASM = "cytoplasm"


@dataclass(frozen=True)
class Calibration:
    """Linear intensity calibration: calibrated = offset + slope * raw."""

    slope: float = 1.0
    offset: float = 0.0

    @property
    def is_identity(self) -> bool:
        return self.slope == 1.0 and self.offset == 0.0

    def apply(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype=np.float64)
        if self.is_identity:
            return values
        return self.offset + self.slope * values


@dataclass(frozen=True, eq=False)
class RasterImage:
    """One channel of one source image.

    The pixel buffer is made read-only on construction.
    """

    data: np.ndarray
    source: str
    channel: int
    pixel_size_um: float = 1.0
    calibration: Calibration = field(default_factory=Calibration)

    def __post_init__(self) -> None:
        if self.data.ndim != 2:
            raise ValueError(
                f"Expected 2D array (Y, X), got {self.data.ndim}D with shape {self.data.shape}"
            )
        if self.pixel_size_um <= 0:
            raise ValueError(f"pixel_size_um must be > 0, got {self.pixel_size_um}")
        data = np.asarray(self.data)
        if data.flags.writeable:
            data = data.view()
            data.flags.writeable = False
        object.__setattr__(self, "data", data)

    @property
    def shape(self) -> tuple[int, int]:
        return (int(self.data.shape[0]), int(self.data.shape[1]))


@dataclass(frozen=True, eq=False)
class Region:
    """A single nucleus or cytoplasm region.

    ``mask`` is cropped to ``bbox`` = (min_row, min_col, max_row, max_col),
    with max bounds exclusive, as in ``skimage.measure.regionprops``.
    """

    ordinal: int
    kind: RegionKind
    source: str
    bbox: tuple[int, int, int, int]
    mask: np.ndarray
    image_shape: tuple[int, int]

    def __post_init__(self) -> None:
        min_row, min_col, max_row, max_col = self.bbox
        expected = (max_row - min_row, max_col - min_col)
        if self.mask.shape != expected:
            raise ValueError(
                f"Mask shape {self.mask.shape} does not match bbox {self.bbox}"
            )
        object.__setattr__(self, "mask", self.mask.astype(bool, copy=False))
        object.__setattr__(self, "kind", RegionKind(self.kind))

    @classmethod
    def from_full_mask(
        cls,
        ordinal: int,
        kind: RegionKind,
        source: str,
        full_mask: np.ndarray,
    ) -> Region:
        """Build a region from a full-extent boolean mask (may be empty)."""
        rows = np.flatnonzero(full_mask.any(axis=1))
        cols = np.flatnonzero(full_mask.any(axis=0))
        shape = (int(full_mask.shape[0]), int(full_mask.shape[1]))
        if rows.size == 0:
            return cls(ordinal, kind, source, (0, 0, 0, 0), np.zeros((0, 0), dtype=bool), shape)
        bbox = (int(rows[0]), int(cols[0]), int(rows[-1]) + 1, int(cols[-1]) + 1)
        crop = full_mask[bbox[0] : bbox[2], bbox[1] : bbox[3]]
        return cls(ordinal, kind, source, bbox, crop.copy(), shape)

    @property
    def area_pixels(self) -> int:
        return int(np.count_nonzero(self.mask))

    @property
    def touches_border(self) -> bool:
        min_row, min_col, max_row, max_col = self.bbox
        h, w = self.image_shape
        return min_row == 0 or min_col == 0 or max_row == h or max_col == w

    def full_mask(self) -> np.ndarray:
        """Return the region mask at full image extent."""
        full = np.zeros(self.image_shape, dtype=bool)
        min_row, min_col, max_row, max_col = self.bbox
        full[min_row:max_row, min_col:max_col] = self.mask
        return full

    def centroid(self) -> tuple[float, float]:
        """Mask centroid in pixel units as (x, y)."""
        rows, cols = np.nonzero(self.mask)
        if rows.size == 0:
            return (float("nan"), float("nan"))
        return (
            float(cols.mean() + self.bbox[1]),
            float(rows.mean() + self.bbox[0]),
        )


class RegionSet:
    """Ordinal-indexed regions of one kind for one source image.

    ``pixel_size_um`` is the pixel size of the raster the regions were
    segmented from, or None when unknown.
    """

    def __init__(
        self,
        source: str,
        kind: RegionKind,
        image_shape: tuple[int, int],
        regions: Iterable[Region] = (),
        pixel_size_um: float | None = None,
    ) -> None:
        self.source = source
        self.kind = RegionKind(kind)
        self.image_shape = (int(image_shape[0]), int(image_shape[1]))
        self.pixel_size_um = pixel_size_um
        self._regions: dict[int, Region] = {}
        for region in regions:
            self.add(region)

    def add(self, region: Region) -> None:
        if region.kind is not self.kind:
            raise ValueError(f"Cannot add {region.kind.value} region to {self.kind.value} set")
        if region.source != self.source:
            raise ValueError(f"Region source {region.source!r} != set source {self.source!r}")
        if region.image_shape != self.image_shape:
            raise ValueError(
                f"Region image shape {region.image_shape} != set shape {self.image_shape}"
            )
        if region.ordinal in self._regions:
            raise ValueError(f"Duplicate ordinal {region.ordinal} in {self.source}")
        self._regions[region.ordinal] = region

    @property
    def ordinals(self) -> list[int]:
        return sorted(self._regions)

    def get(self, ordinal: int) -> Region:
        try:
            return self._regions[ordinal]
        except KeyError:
            raise KeyError(f"No region with ordinal {ordinal} in {self.source}") from None

    def __contains__(self, ordinal: object) -> bool:
        return ordinal in self._regions

    def __iter__(self) -> Iterator[Region]:
        for ordinal in self.ordinals:
            yield self._regions[ordinal]

    def __len__(self) -> int:
        return len(self._regions)

    def __repr__(self) -> str:
        return f"RegionSet(source={self.source!r}, kind={self.kind.value}, n={len(self)})"

    def to_label_image(self) -> np.ndarray:
        """Paint regions into an int32 label image (pixel value = ordinal).

        Overlapping regions are painted in ordinal order, so higher ordinals win.
        """
        labels = np.zeros(self.image_shape, dtype=np.int32)
        for region in self:
            min_row, min_col, max_row, max_col = region.bbox
            labels[min_row:max_row, min_col:max_col][region.mask] = region.ordinal
        return labels


@dataclass(frozen=True)
class Measurement:
    """One region measured against one channel."""

    ordinal: int
    channel: int
    kind: RegionKind
    area: float
    mean: float
    integrated_density: float
    raw_integrated_density: float
    pixel_count: int = 0

    @property
    def key(self) -> tuple[int, int, RegionKind]:
        return (self.ordinal, self.channel, self.kind)


@dataclass(frozen=True)
class RegionValues:
    """The four statistics reported per region kind and channel."""

    area: float
    mean: float
    int_den: float
    raw_int_den: float

    @classmethod
    def from_measurement(cls, m: Measurement) -> RegionValues:
        return cls(m.area, m.mean, m.integrated_density, m.raw_integrated_density)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.area, self.mean, self.int_den, self.raw_int_den)


@dataclass(frozen=True)
class ChannelValues:
    """Nucleus and cytoplasm statistics for one auxiliary channel."""

    nucleus: RegionValues
    cytoplasm: RegionValues


@dataclass(frozen=True)
class CellRecord:
    """One output row: a detected cell with its per-channel statistics."""

    filename: str
    ordinal: int
    x: float
    y: float
    channels: dict[int, ChannelValues]

    def to_row(self, channels: list[int]) -> list[object]:
        """Flatten in Results.csv column order for the given channels."""
        row: list[object] = [self.filename, self.x, self.y]
        for ch in channels:
            values = self.channels[ch]
            row.extend(values.nucleus.as_tuple())
            row.extend(values.cytoplasm.as_tuple())
        return row
