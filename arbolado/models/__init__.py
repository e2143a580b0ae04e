"""Domain models for the tree inventory spreadsheet importer.

This package contains the value objects passed between the normalizers,
the reconciliation services and the batch loader.
"""

from .error_record import ErrorRecord
from .import_result import ImportResult, JsonImportResult, LoadResult, PreviewResult
from .reconciliation import DuplicateGroup, StreetCluster, VariantDetail
from .tree_record import InvalidRow, NormalizedTreeRecord, StoredTreeRow

__all__ = [
    # Row models
    "NormalizedTreeRecord",
    "InvalidRow",
    "StoredTreeRow",
    # Reconciliation models
    "StreetCluster",
    "VariantDetail",
    "DuplicateGroup",
    # Results
    "PreviewResult",
    "ImportResult",
    "JsonImportResult",
    "LoadResult",
    "ErrorRecord",
]
