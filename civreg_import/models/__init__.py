"""Domain models for the civil-registry spreadsheet importer.

This package holds the frozen dataclasses passed between pipeline stages:
entity definitions (data-driven alias tables), canonical records, import
results and rejection records.
"""

from .entity import EntityDefinition
from .error_record import ErrorRecord
from .import_result import ImportResult, ImportStage
from .record import CanonicalRecord

__all__ = [
    # Configuration models
    "EntityDefinition",
    # Processing models
    "CanonicalRecord",
    "ErrorRecord",
    "ImportResult",
    "ImportStage",
]
