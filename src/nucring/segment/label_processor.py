"""Label image to RegionSet extraction using scikit-image regionprops."""

from __future__ import annotations

import logging

import numpy as np
from skimage.measure import regionprops

from nucring.core.models import Region, RegionKind, RegionSet

logger = logging.getLogger(__name__)


class LabelProcessor:
    """Filter labeled objects and assign stable ordinals.

    Objects are kept when their pixel area lies within the bounds and their
    bounding box does not touch the image border. Survivors are numbered
    1..N top-to-bottom, then left-to-right by bounding-box origin, so an
    unchanged label image always yields the same ordinals.
    """

    def extract_regions(
        self,
        labels: np.ndarray,
        source: str,
        kind: RegionKind = RegionKind.NUCLEUS,
        pixel_size_um: float = 1.0,
        area_bounds: tuple[float, float] | None = None,
        exclude_border: bool = True,
    ) -> RegionSet:
        """Convert a label image to a RegionSet.

        Args:
            labels: 2D integer array (Y, X), 0 = background.
            source: Source image identity stored on every region.
            kind: Region kind of the output set.
            pixel_size_um: Pixel size recorded on the output set; not used
                for filtering.
            area_bounds: Inclusive (min, max) area in pixels. None = no filter.
            exclude_border: Drop objects whose bbox touches the image edge.

        Returns:
            RegionSet, empty if nothing survives.
        """
        shape = (int(labels.shape[0]), int(labels.shape[1]))
        region_set = RegionSet(source, kind, shape, pixel_size_um=pixel_size_um)
        if labels.max() == 0:
            return region_set

        kept = []
        too_small = too_large = on_border = 0
        for prop in regionprops(labels):
            area = float(prop.area)
            if area_bounds is not None:
                if area < area_bounds[0]:
                    too_small += 1
                    continue
                if area > area_bounds[1]:
                    too_large += 1
                    continue
            min_row, min_col, max_row, max_col = prop.bbox
            if exclude_border and (
                min_row == 0 or min_col == 0 or max_row == shape[0] or max_col == shape[1]
            ):
                on_border += 1
                continue
            kept.append(prop)

        # centroid breaks ties between objects sharing a bbox origin
        kept.sort(key=lambda p: (p.bbox[0], p.bbox[1], p.centroid[0], p.centroid[1]))

        for ordinal, prop in enumerate(kept, start=1):
            region_set.add(Region(
                ordinal=ordinal,
                kind=kind,
                source=source,
                bbox=tuple(int(v) for v in prop.bbox),
                mask=np.array(prop.image, dtype=bool),
                image_shape=shape,
            ))

        logger.debug(
            "%s: kept %d objects (rejected: %d small, %d large, %d on border; %.4g µm/px)",
            source, len(kept), too_small, too_large, on_border, pixel_size_um,
        )
        return region_set
