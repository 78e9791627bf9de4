"""nucring core — data model, configuration, region archive, result store."""

from nucring.core.archive import RegionArchive, read_region_set, write_region_set
from nucring.core.config import AnalysisConfig
from nucring.core.exceptions import (
    ConfigurationError,
    IOFailure,
    NucRingError,
    ReconciliationMismatch,
)
from nucring.core.models import (
    Calibration,
    CellRecord,
    ChannelValues,
    Measurement,
    RasterImage,
    Region,
    RegionKind,
    RegionSet,
    RegionValues,
)
from nucring.core.results import RESULTS_FILENAME, ResultStore, result_columns

__all__ = [
    "AnalysisConfig",
    "Calibration",
    "CellRecord",
    "ChannelValues",
    "ConfigurationError",
    "IOFailure",
    "Measurement",
    "NucRingError",
    "RESULTS_FILENAME",
    "RasterImage",
    "ReconciliationMismatch",
    "Region",
    "RegionArchive",
    "RegionKind",
    "RegionSet",
    "RegionValues",
    "ResultStore",
    "read_region_set",
    "result_columns",
    "write_region_set",
]
