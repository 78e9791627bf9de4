"""Tests for LabelProcessor region extraction and ordinal assignment."""

from __future__ import annotations

import numpy as np
import pytest

from nucring.core.models import RegionKind
from nucring.segment.label_processor import LabelProcessor


@pytest.fixture
def processor() -> LabelProcessor:
    return LabelProcessor()


class TestExtractRegions:
    def test_known_square(self, processor):
        labels = np.zeros((100, 100), dtype=np.int32)
        labels[20:30, 40:55] = 7
        rs = processor.extract_regions(labels, source="img")
        assert rs.ordinals == [1]
        region = rs.get(1)
        assert region.bbox == (20, 40, 30, 55)
        assert region.area_pixels == 150
        assert region.kind is RegionKind.NUCLEUS
        assert region.source == "img"

    def test_ordinals_ignore_label_values(self, processor):
        """Ordinals follow position, not the label value."""
        labels = np.zeros((100, 100), dtype=np.int32)
        labels[60:70, 10:20] = 1
        labels[10:20, 60:70] = 2
        labels[10:20, 10:20] = 3
        rs = processor.extract_regions(labels, source="img")
        assert rs.get(1).bbox == (10, 10, 20, 20)
        assert rs.get(2).bbox == (10, 60, 20, 70)
        assert rs.get(3).bbox == (60, 10, 70, 20)

    def test_area_bounds_inclusive(self, processor):
        labels = np.zeros((100, 100), dtype=np.int32)
        labels[10:20, 10:20] = 1  # 100 px
        labels[40:45, 40:45] = 2  # 25 px
        labels[60:90, 60:90] = 3  # 900 px
        rs = processor.extract_regions(labels, source="img", area_bounds=(100, 899))
        assert len(rs) == 1
        assert rs.get(1).area_pixels == 100

    def test_border_objects_dropped(self, processor):
        labels = np.zeros((50, 50), dtype=np.int32)
        labels[0:10, 20:30] = 1
        labels[20:30, 40:50] = 2
        labels[20:30, 20:30] = 3
        rs = processor.extract_regions(labels, source="img")
        assert len(rs) == 1
        assert rs.get(1).bbox == (20, 20, 30, 30)

    def test_border_objects_kept_when_disabled(self, processor):
        labels = np.zeros((50, 50), dtype=np.int32)
        labels[0:10, 20:30] = 1
        rs = processor.extract_regions(labels, source="img", exclude_border=False)
        assert len(rs) == 1

    def test_empty_labels(self, processor):
        rs = processor.extract_regions(np.zeros((20, 20), dtype=np.int32), source="img")
        assert len(rs) == 0
        assert rs.image_shape == (20, 20)
