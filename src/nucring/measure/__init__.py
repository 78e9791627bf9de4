"""nucring measure — per-region statistics and per-cell reconciliation."""

from nucring.measure.measurer import Measurer
from nucring.measure.reconcile import ResultReconciler

__all__ = [
    "Measurer",
    "ResultReconciler",
]
