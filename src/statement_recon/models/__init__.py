"""Data models for reconciliation."""

from .transaction import (
    BankTransaction,
    SystemTransaction,
    TransactionType,
    MatchRelation,
    SessionSummary,
    Reconciliation,
    ReconciliationStatus,
    CompletionRequest,
    CompletionResult,
    StatementImport,
)

__all__ = [
    "BankTransaction",
    "SystemTransaction",
    "TransactionType",
    "MatchRelation",
    "SessionSummary",
    "Reconciliation",
    "ReconciliationStatus",
    "CompletionRequest",
    "CompletionResult",
    "StatementImport",
]
