"""Cytoplasmic ring derivation around detected nuclei."""

from __future__ import annotations

import logging

import numpy as np
from scipy import ndimage as ndi
from skimage.morphology import disk
from skimage.segmentation import expand_labels

from nucring.core.exceptions import ConfigurationError
from nucring.core.models import Region, RegionKind, RegionSet

logger = logging.getLogger(__name__)


def thickness_to_pixels(thickness_um: float, pixel_size_um: float) -> int:
    """Ring width in whole pixels (at least 1)."""
    return max(1, int(round(thickness_um / pixel_size_um)))


class AnnulusGenerator:
    """Build a cytoplasm RegionSet from a nucleus RegionSet.

    Ring *k* is nucleus *k* dilated by the ring width minus nucleus *k*.
    By default rings are computed independently, so rings of neighbouring
    cells may overlap each other and may cover a neighbouring nucleus. With
    ``exclusive=True`` every ring pixel belongs to its nearest nucleus and no
    ring covers any nucleus.

    Args:
        thickness_um: Ring width in µm.
        exclusive: Enforce non-overlapping cytoplasm ownership.
    """

    def __init__(self, thickness_um: float, exclusive: bool = False) -> None:
        if thickness_um <= 0:
            raise ConfigurationError("cytoplasm_thickness", f"must be > 0, got {thickness_um}")
        self.thickness_um = thickness_um
        self.exclusive = exclusive

    def derive(self, nuclei: RegionSet, pixel_size_um: float = 1.0) -> RegionSet:
        """Return the cytoplasm RegionSet with the same ordinals as ``nuclei``."""
        if nuclei.kind is not RegionKind.NUCLEUS:
            raise ValueError(f"Rings are derived from nucleus regions, got {nuclei.kind.value}")

        radius = thickness_to_pixels(self.thickness_um, pixel_size_um)
        if self.exclusive:
            rings = self._exclusive_rings(nuclei, radius)
        else:
            rings = [self._ring(nucleus, radius) for nucleus in nuclei]

        cyto = RegionSet(
            nuclei.source, RegionKind.CYTOPLASM, nuclei.image_shape, rings,
            pixel_size_um=pixel_size_um,
        )
        logger.debug(
            "%s: derived %d rings (%d px, exclusive=%s)",
            nuclei.source, len(cyto), radius, self.exclusive,
        )
        return cyto

    def _ring(self, nucleus: Region, radius: int) -> Region:
        """Dilate one nucleus inside a padded window and subtract it."""
        h, w = nucleus.image_shape
        min_row, min_col, max_row, max_col = nucleus.bbox
        top, left = max(min_row - radius, 0), max(min_col - radius, 0)
        bottom, right = min(max_row + radius, h), min(max_col + radius, w)

        window = np.zeros((bottom - top, right - left), dtype=bool)
        window[min_row - top : max_row - top, min_col - left : max_col - left] = nucleus.mask
        ring = ndi.binary_dilation(window, structure=disk(radius)) & ~window

        full = np.zeros((h, w), dtype=bool)
        full[top:bottom, left:right] = ring
        return Region.from_full_mask(nucleus.ordinal, RegionKind.CYTOPLASM, nucleus.source, full)

    def _exclusive_rings(self, nuclei: RegionSet, radius: int) -> list[Region]:
        """Nearest-nucleus assignment of ring pixels."""
        labels = nuclei.to_label_image()
        expanded = expand_labels(labels, distance=radius)
        owned = expanded * (labels == 0)
        return [
            Region.from_full_mask(
                nucleus.ordinal, RegionKind.CYTOPLASM, nucleus.source, owned == nucleus.ordinal,
            )
            for nucleus in nuclei
        ]
