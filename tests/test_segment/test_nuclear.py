"""Tests for NuclearSegmenter and its threshold helpers."""

from __future__ import annotations

import numpy as np
import pytest
from skimage.draw import disk

from nucring.core.models import RasterImage, RegionKind
from nucring.segment.base_segmenter import SegmentationParams
from nucring.segment.nuclear import (
    NuclearSegmenter,
    enhance_contrast,
    local_threshold,
    split_touching,
)


@pytest.fixture
def segmenter() -> NuclearSegmenter:
    return NuclearSegmenter()


def _raster(image: np.ndarray, pixel_size_um: float = 1.0) -> RasterImage:
    return RasterImage(image, source="img", channel=1, pixel_size_um=pixel_size_um)


class TestEnhanceContrast:
    def test_range(self, nuclear_image):
        out = enhance_contrast(nuclear_image, block_size=32, clip_limit=0.01)
        assert out.min() >= 0.0
        assert out.max() <= 1.0
        assert out[30, 30] > out[5, 5]

    def test_constant_image(self):
        out = enhance_contrast(np.full((50, 50), 7, dtype=np.uint16), 32, 0.01)
        assert not out.any()


class TestLocalThreshold:
    def test_phansalkar_without_exponential_matches_sauvola(self):
        rng = np.random.default_rng(0)
        image = rng.random((64, 64))
        phansalkar = local_threshold(
            image, SegmentationParams(local_radius=7, p=0.0, threshold_method="phansalkar"),
        )
        sauvola = local_threshold(
            image, SegmentationParams(local_radius=7, threshold_method="sauvola"),
        )
        inner = (slice(15, -15), slice(15, -15))
        np.testing.assert_allclose(phansalkar[inner], sauvola[inner], atol=1e-6)

    def test_phansalkar_raises_threshold_over_flat_background(self):
        image = np.full((40, 40), 0.02)
        threshold = local_threshold(image, SegmentationParams(local_radius=5))
        assert (image <= threshold).all()

    @pytest.mark.parametrize("method", ["phansalkar", "sauvola"])
    def test_zero_field_surface_not_negative(self, method):
        image = np.zeros((60, 60))
        image[20:35, 20:35] = 1.0
        threshold = local_threshold(
            image, SegmentationParams(local_radius=10, threshold_method=method),
        )
        assert (threshold >= 0).all()
        assert not (image > threshold)[image == 0].any()


class TestSplitTouching:
    def test_two_touching_disks_separated(self):
        foreground = np.zeros((60, 80), dtype=bool)
        for center in ((30, 28), (30, 50)):
            rr, cc = disk(center, 12, shape=foreground.shape)
            foreground[rr, cc] = True
        labels = split_touching(foreground, min_distance=8)
        assert labels.max() == 2
        assert labels[30, 28] != labels[30, 50]

    def test_every_component_seeded(self):
        foreground = np.zeros((30, 30), dtype=bool)
        foreground[5:7, 5:7] = True
        foreground[20:25, 20:25] = True
        labels = split_touching(foreground, min_distance=10)
        assert labels[5, 5] > 0
        assert labels[22, 22] > 0
        assert labels[5, 5] != labels[22, 22]

    def test_empty(self):
        labels = split_touching(np.zeros((10, 10), dtype=bool), 3)
        assert labels.dtype == np.int32
        assert not labels.any()


class TestDetect:
    def test_two_nuclei(self, segmenter, params, nuclear_image):
        nuclei = segmenter.detect(_raster(nuclear_image), params)
        assert nuclei.kind is RegionKind.NUCLEUS
        assert nuclei.ordinals == [1, 2]
        for region in nuclei:
            assert 250 <= region.area_pixels <= 500

    def test_ordinals_top_to_bottom(self, segmenter, params, nuclear_image):
        nuclei = segmenter.detect(_raster(nuclear_image), params)
        _, y1 = nuclei.get(1).centroid()
        _, y2 = nuclei.get(2).centroid()
        assert y1 == pytest.approx(30, abs=1.5)
        assert y2 == pytest.approx(70, abs=1.5)

    def test_deterministic(self, segmenter, params, nuclear_image):
        first = segmenter.detect(_raster(nuclear_image), params)
        second = segmenter.detect(_raster(nuclear_image), params)
        assert first.ordinals == second.ordinals
        np.testing.assert_array_equal(first.to_label_image(), second.to_label_image())

    def test_border_nucleus_excluded(self, segmenter, params):
        image = np.zeros((100, 100), dtype=np.uint16)
        for center in ((50, 50), (4, 50)):
            rr, cc = disk(center, 10, shape=image.shape)
            image[rr, cc] = 200
        nuclei = segmenter.detect(_raster(image), params)
        assert len(nuclei) == 1
        x, y = nuclei.get(1).centroid()
        assert (x, y) == (pytest.approx(50, abs=1.5), pytest.approx(50, abs=1.5))

    def test_area_bounds_in_physical_units(self, segmenter, nuclear_image):
        # each disk is ~300-400 px, i.e. 75-100 µm² at 0.5 µm/px
        too_large = SegmentationParams(
            block_size=32, local_radius=10, min_area=10.0, max_area=50.0, min_distance=8,
        )
        assert len(segmenter.detect(_raster(nuclear_image, 0.5), too_large)) == 0
        fits = SegmentationParams(
            block_size=32, local_radius=10, min_area=50.0, max_area=200.0, min_distance=8,
        )
        assert len(segmenter.detect(_raster(nuclear_image, 0.5), fits)) == 2

    @pytest.mark.parametrize("method", ["phansalkar", "sauvola"])
    def test_zero_background_yields_no_phantom_nuclei(self, segmenter, method):
        image = np.zeros((100, 100), dtype=np.uint16)
        image[40:61, 40:61] = 200
        params = SegmentationParams(
            block_size=32, local_radius=10, min_area=100.0, max_area=1000.0, min_distance=8,
            threshold_method=method,
        )
        nuclei = segmenter.detect(_raster(image), params)
        assert len(nuclei) == 1
        assert nuclei.get(1).bbox[0] >= 35
        assert nuclei.get(1).bbox[2] <= 66

    def test_constant_image_has_no_nuclei(self, segmenter, params):
        nuclei = segmenter.detect(_raster(np.full((100, 100), 50, dtype=np.uint16)), params)
        assert len(nuclei) == 0

    def test_rejects_3d(self, segmenter, params):
        with pytest.raises(ValueError, match="2D"):
            segmenter.segment(np.zeros((2, 10, 10)), params)
