"""Assemble keyed measurements into per-cell records."""

from __future__ import annotations

from typing import Iterable, Sequence

from nucring.core.exceptions import ReconciliationMismatch
from nucring.core.models import (
    CellRecord,
    ChannelValues,
    Measurement,
    RegionKind,
    RegionValues,
)

_KINDS = (RegionKind.NUCLEUS, RegionKind.CYTOPLASM)


class ResultReconciler:
    """Join measurements by (ordinal, channel, kind), never by position.

    A record is produced only when every configured channel has both a
    nucleus and a cytoplasm measurement for the ordinal. Otherwise
    ``ReconciliationMismatch`` is raised and no record is returned for the
    image.

    Args:
        channels: Auxiliary channel indices expected for every cell.
    """

    def __init__(self, channels: Sequence[int]) -> None:
        self.channels = list(channels)

    def reconcile(
        self,
        filename: str,
        ordinals: Iterable[int],
        measurements: Iterable[Measurement],
        centroids: dict[int, tuple[float, float]],
    ) -> list[CellRecord]:
        """Build one CellRecord per ordinal, in ascending ordinal order.

        Args:
            filename: Source file name reported in the output.
            ordinals: Ordinals of the nucleus RegionSet.
            measurements: Every measurement collected for the image.
            centroids: Nucleus centroid (x, y) per ordinal.

        Raises:
            ReconciliationMismatch: On a missing or duplicated measurement,
                or a missing centroid.
        """
        index: dict[tuple[int, int, RegionKind], Measurement] = {}
        for m in measurements:
            if m.key in index:
                raise ReconciliationMismatch(
                    filename, m.ordinal,
                    detail=f"duplicate measurement for C{m.channel}/{m.kind.value}",
                )
            index[m.key] = m

        records: list[CellRecord] = []
        for ordinal in sorted(ordinals):
            missing = [
                (ordinal, ch, kind.value)
                for ch in self.channels
                for kind in _KINDS
                if (ordinal, ch, kind) not in index
            ]
            if missing:
                raise ReconciliationMismatch(filename, ordinal, missing)
            if ordinal not in centroids:
                raise ReconciliationMismatch(filename, ordinal, detail="missing centroid")

            x, y = centroids[ordinal]
            records.append(CellRecord(
                filename=filename,
                ordinal=ordinal,
                x=x,
                y=y,
                channels={
                    ch: ChannelValues(
                        nucleus=RegionValues.from_measurement(
                            index[(ordinal, ch, RegionKind.NUCLEUS)]
                        ),
                        cytoplasm=RegionValues.from_measurement(
                            index[(ordinal, ch, RegionKind.CYTOPLASM)]
                        ),
                    )
                    for ch in self.channels
                },
            ))
        return records
