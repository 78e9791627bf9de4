"""The Results.csv table, one row per detected cell."""

from __future__ import annotations

import csv
import logging
import threading
from pathlib import Path
from typing import Sequence

import pandas as pd

from nucring.core.exceptions import ConfigurationError, IOFailure
from nucring.core.models import CellRecord

logger = logging.getLogger(__name__)

RESULTS_FILENAME = "Results.csv"

_REGION_PREFIXES = ("Nuc", "Cyto")
_STATISTICS = ("Area", "Mean", "IntDen", "RawIntDen")


def result_columns(channels: Sequence[int]) -> list[str]:
    """Column names for the given auxiliary channels, in output order."""
    columns = ["Filename", "X", "Y"]
    for ch in channels:
        for prefix in _REGION_PREFIXES:
            columns.extend(f"C{ch}{prefix}{stat}" for stat in _STATISTICS)
    return columns


class ResultStore:
    """Append-only CSV store with a fixed header.

    Appends are serialized with a lock so that concurrent image workers
    never interleave partial rows.

    Args:
        path: CSV file path.
        channels: Auxiliary channel indices, defining the column layout.
    """

    def __init__(self, path: Path, channels: Sequence[int]) -> None:
        self.path = Path(path)
        self.channels = list(channels)
        self.columns = result_columns(self.channels)
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Truncate the file and write the header."""
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                pd.DataFrame(columns=self.columns).to_csv(self.path, index=False)
            except OSError as exc:
                raise IOFailure(str(self.path), str(exc)) from exc

    def ensure_header(self) -> None:
        """Write the header if the file is missing; verify it otherwise.

        Raises:
            ConfigurationError: If an existing file has a different header.
        """
        if not self.path.exists() or self.path.stat().st_size == 0:
            self.reset()
            return
        existing = self.read_header()
        if existing != self.columns:
            raise ConfigurationError(
                "measure_channels",
                f"{self.path} has columns {existing}, expected {self.columns}",
            )

    def read_header(self) -> list[str]:
        with open(self.path, newline="") as f:
            return next(csv.reader(f), [])

    def append(self, records: Sequence[CellRecord]) -> int:
        """Append records in the given order.

        Returns:
            Number of rows written.
        """
        if not records:
            return 0
        rows = [record.to_row(self.channels) for record in records]
        df = pd.DataFrame(rows, columns=self.columns)
        with self._lock:
            try:
                df.to_csv(self.path, mode="a", header=False, index=False)
            except OSError as exc:
                raise IOFailure(str(self.path), str(exc)) from exc
        logger.debug("Appended %d rows to %s", len(rows), self.path)
        return len(rows)

    def read(self) -> pd.DataFrame:
        """Load the full table."""
        return pd.read_csv(self.path)
