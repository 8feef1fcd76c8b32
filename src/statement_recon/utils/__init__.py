"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    ValidationError,
    NotFoundError,
    ConflictError,
    IncompleteReconciliationError,
    WorkflowError,
    PersistenceError,
    StatementParseError,
    ConfigurationError,
    ReportGenerationError,
)
from .logging_config import setup_logging

__all__ = [
    "ReconciliationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "IncompleteReconciliationError",
    "WorkflowError",
    "PersistenceError",
    "StatementParseError",
    "ConfigurationError",
    "ReportGenerationError",
    "setup_logging",
]
