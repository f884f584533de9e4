"""Service layer for the migration engine."""

from .analyzer import AnalysisReport, DataAnalyzer, DataIssue, IssueType
from .fk_reporter import InvalidFKReporter
from .id_mapping import IdMappingStore
from .progress import ProgressReporter
from .rollback import ROLLBACK_ORDER, RollbackResult, RollbackTool
from .validator import MigrationValidator, all_passed, classify

__all__ = [
    "AnalysisReport",
    "DataAnalyzer",
    "DataIssue",
    "IssueType",
    "InvalidFKReporter",
    "IdMappingStore",
    "ProgressReporter",
    "ROLLBACK_ORDER",
    "RollbackResult",
    "RollbackTool",
    "MigrationValidator",
    "all_passed",
    "classify",
]
