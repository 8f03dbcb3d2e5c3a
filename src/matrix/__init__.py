"""
Premium matrix orchestration: selection, row expansion, enrichment and recompute.
"""
from .catalogue import CodeCatalogue, CodeInspection, CodeListing
from .models import Availability, MatrixSnapshot, Row, RowKey, SelectionState
from .orchestrator import SelectionOrchestrator
from .store import MatrixStore

__all__ = [
    "Availability",
    "CodeCatalogue",
    "CodeInspection",
    "CodeListing",
    "MatrixSnapshot",
    "MatrixStore",
    "Row",
    "RowKey",
    "SelectionOrchestrator",
    "SelectionState",
]
