"""Tests for AnnulusGenerator cytoplasmic ring derivation."""

from __future__ import annotations

import numpy as np
import pytest

from nucring.core.exceptions import ConfigurationError
from nucring.core.models import RegionKind, RegionSet
from nucring.segment.annulus import AnnulusGenerator, thickness_to_pixels


class TestThicknessToPixels:
    @pytest.mark.parametrize("thickness, pixel_size, expected", [
        (2.0, 1.0, 2),
        (2.0, 0.5, 4),
        (1.0, 0.65, 2),
        (0.1, 1.0, 1),
    ])
    def test_conversion(self, thickness, pixel_size, expected):
        assert thickness_to_pixels(thickness, pixel_size) == expected


class TestDerive:
    def test_ordinals_preserved(self, make_square_nuclei):
        nuclei = make_square_nuclei([(5, 5, 8), (30, 30, 10), (10, 40, 6)])
        cyto = AnnulusGenerator(2.0).derive(nuclei)
        assert cyto.kind is RegionKind.CYTOPLASM
        assert cyto.ordinals == nuclei.ordinals
        assert cyto.source == nuclei.source
        assert cyto.image_shape == nuclei.image_shape

    def test_ring_excludes_own_nucleus(self, make_square_nuclei):
        nuclei = make_square_nuclei([(20, 20, 10)])
        ring = AnnulusGenerator(3.0).derive(nuclei).get(1)
        assert not (ring.full_mask() & nuclei.get(1).full_mask()).any()

    def test_ring_area_one_pixel(self, make_square_nuclei):
        """A 1-px ring around a 10x10 square is the 4-connected outline: 40 px."""
        nuclei = make_square_nuclei([(20, 20, 10)])
        ring = AnnulusGenerator(1.0).derive(nuclei).get(1)
        assert ring.area_pixels == 40

    def test_ring_width_scales_with_pixel_size(self, make_square_nuclei):
        nuclei = make_square_nuclei([(20, 20, 10)])
        thin = AnnulusGenerator(1.0).derive(nuclei, pixel_size_um=1.0).get(1)
        thick = AnnulusGenerator(1.0).derive(nuclei, pixel_size_um=0.25).get(1)
        assert thick.area_pixels > thin.area_pixels

    def test_ring_clipped_at_image_edge(self, make_square_nuclei):
        nuclei = make_square_nuclei([(1, 1, 5)])
        ring = AnnulusGenerator(4.0).derive(nuclei).get(1)
        assert ring.full_mask().shape == (60, 60)
        assert ring.bbox[0] == 0 and ring.bbox[1] == 0

    def test_rings_overlap_by_default(self, make_square_nuclei):
        nuclei = make_square_nuclei([(20, 10, 10), (20, 22, 10)])
        cyto = AnnulusGenerator(3.0).derive(nuclei)
        ring1, ring2 = cyto.get(1).full_mask(), cyto.get(2).full_mask()
        assert (ring1 & ring2).any()
        # the default ring may cover the neighbouring nucleus
        assert (ring1 & nuclei.get(2).full_mask()).any()

    def test_exclusive_rings_disjoint(self, make_square_nuclei):
        nuclei = make_square_nuclei([(20, 10, 10), (20, 22, 10)])
        cyto = AnnulusGenerator(3.0, exclusive=True).derive(nuclei)
        ring1, ring2 = cyto.get(1).full_mask(), cyto.get(2).full_mask()
        assert not (ring1 & ring2).any()
        nucleus_pixels = nuclei.to_label_image() > 0
        assert not (ring1 & nucleus_pixels).any()
        assert not (ring2 & nucleus_pixels).any()

    def test_isolated_ring_same_in_both_modes(self, make_square_nuclei):
        nuclei = make_square_nuclei([(20, 20, 10)])
        overlapping = AnnulusGenerator(3.0).derive(nuclei).get(1)
        exclusive = AnnulusGenerator(3.0, exclusive=True).derive(nuclei).get(1)
        np.testing.assert_array_equal(overlapping.full_mask(), exclusive.full_mask())

    def test_empty_nuclei(self):
        nuclei = RegionSet("img", RegionKind.NUCLEUS, (20, 20))
        assert len(AnnulusGenerator(2.0).derive(nuclei)) == 0
        assert len(AnnulusGenerator(2.0, exclusive=True).derive(nuclei)) == 0

    def test_requires_nucleus_set(self):
        cyto = RegionSet("img", RegionKind.CYTOPLASM, (20, 20))
        with pytest.raises(ValueError, match="nucleus"):
            AnnulusGenerator(2.0).derive(cyto)

    def test_invalid_thickness(self):
        with pytest.raises(ConfigurationError):
            AnnulusGenerator(0.0)
