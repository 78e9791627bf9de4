"""Shared fixtures for segmentation module tests."""

from __future__ import annotations

import numpy as np
import pytest

from nucring.core.models import Region, RegionKind, RegionSet
from nucring.segment.base_segmenter import BaseSegmenter, SegmentationParams


class MockSegmenter(BaseSegmenter):
    """A mock segmenter that returns pre-defined labels for testing."""

    def __init__(self, labels: np.ndarray) -> None:
        self._labels = labels

    def segment(
        self, image: np.ndarray, params: SegmentationParams, pixel_size_um: float = 1.0,
    ) -> np.ndarray:
        return self._labels.astype(np.int32)


@pytest.fixture
def params() -> SegmentationParams:
    """Parameters tuned for the 100x100 two-disk image."""
    return SegmentationParams(block_size=32, local_radius=10, min_area=100.0, max_area=1000.0)


def square_nuclei(
    squares: list[tuple[int, int, int]], shape: tuple[int, int] = (60, 60),
) -> RegionSet:
    """Nucleus set of (top, left, size) squares, ordinals in list order."""
    rs = RegionSet("img", RegionKind.NUCLEUS, shape)
    for ordinal, (top, left, size) in enumerate(squares, start=1):
        mask = np.zeros(shape, dtype=bool)
        mask[top : top + size, left : left + size] = True
        rs.add(Region.from_full_mask(ordinal, RegionKind.NUCLEUS, "img", mask))
    return rs


@pytest.fixture
def make_square_nuclei():
    return square_nuclei


@pytest.fixture
def make_segmenter():
    """Factory for a MockSegmenter returning the given labels."""
    return MockSegmenter
