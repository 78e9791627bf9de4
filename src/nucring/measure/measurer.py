"""Per-region statistics of a region set on one channel raster."""

from __future__ import annotations

import logging

from nucring.core.exceptions import IOFailure
from nucring.core.models import Measurement, RasterImage, RegionSet
from nucring.measure import metrics

logger = logging.getLogger(__name__)


class Measurer:
    """Compute keyed Measurements by combining regions with a channel raster.

    Uses bounding-box optimization: each region's mask is already cropped to
    its bbox, so only the matching crop of the raster is read.
    """

    def measure(self, regions: RegionSet, raster: RasterImage) -> list[Measurement]:
        """Measure every region of ``regions`` on ``raster``.

        Returns:
            One Measurement per region, in ordinal order, keyed by
            (ordinal, raster.channel, regions.kind).

        Raises:
            IOFailure: If the raster extent differs from the regions' image.
        """
        if raster.shape != regions.image_shape:
            raise IOFailure(
                f"C{raster.channel}-{raster.source}",
                f"channel shape {raster.shape} != segmented shape {regions.image_shape}",
            )

        image = raster.data
        records: list[Measurement] = []
        for region in regions:
            min_row, min_col, max_row, max_col = region.bbox
            crop = image[min_row:max_row, min_col:max_col]
            mask = region.mask

            region_area = metrics.area(mask, raster.pixel_size_um)
            mean = metrics.mean_intensity(crop, mask, raster.calibration)
            records.append(Measurement(
                ordinal=region.ordinal,
                channel=raster.channel,
                kind=regions.kind,
                area=region_area,
                mean=mean,
                integrated_density=metrics.integrated_density(
                    crop, mask, raster.pixel_size_um, raster.calibration,
                ),
                raw_integrated_density=metrics.raw_integrated_density(crop, mask),
                pixel_count=metrics.pixel_count(mask),
            ))

        logger.debug(
            "%s: measured %d %s regions on C%d",
            raster.source, len(records), regions.kind.value, raster.channel,
        )
        return records

    def centroids(
        self, nuclei: RegionSet, pixel_size_um: float = 1.0,
    ) -> dict[int, tuple[float, float]]:
        """Nucleus mask centroids in physical units, keyed by ordinal."""
        result: dict[int, tuple[float, float]] = {}
        for region in nuclei:
            x, y = region.centroid()
            result[region.ordinal] = (x * pixel_size_um, y * pixel_size_um)
        return result
