"""nucring pipeline — per-image working set and batch orchestration."""

from nucring.pipeline.context import ProcessingContext
from nucring.pipeline.engine import AnalysisEngine, BatchResult, ImageOutcome, Stage

__all__ = [
    "AnalysisEngine",
    "BatchResult",
    "ImageOutcome",
    "ProcessingContext",
    "Stage",
]
