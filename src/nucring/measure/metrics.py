"""Per-region intensity statistics."""

from __future__ import annotations

import numpy as np

from nucring.core.models import Calibration


def pixel_count(mask: np.ndarray) -> int:
    """Number of True pixels in the mask."""
    return int(np.count_nonzero(mask))


def area(mask: np.ndarray, pixel_size_um: float = 1.0) -> float:
    """Region area in µm² (pixel count × pixel size²)."""
    return float(np.float64(pixel_count(mask)) * np.float64(pixel_size_um) ** 2)


def mean_intensity(
    image: np.ndarray, mask: np.ndarray, calibration: Calibration | None = None,
) -> float:
    """Mean calibrated intensity within the mask (0.0 for an empty mask)."""
    if not np.any(mask):
        return 0.0
    values = image[mask]
    if calibration is not None:
        values = calibration.apply(values)
    return float(np.mean(values, dtype=np.float64))


def raw_integrated_density(image: np.ndarray, mask: np.ndarray) -> float:
    """Sum of uncalibrated pixel values within the mask."""
    return float(np.sum(image[mask], dtype=np.float64))


def integrated_density(
    image: np.ndarray,
    mask: np.ndarray,
    pixel_size_um: float = 1.0,
    calibration: Calibration | None = None,
) -> float:
    """Area × mean intensity."""
    return area(mask, pixel_size_um) * mean_intensity(image, mask, calibration)
