"""Custom exceptions for the reconciliation application."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ValidationError(ReconciliationError):
    """Malformed input, such as an empty or duplicate-id transaction list."""

    pass


class NotFoundError(ReconciliationError):
    """Unknown transaction id, or an id that is not in the expected state."""

    pass


class ConflictError(ReconciliationError):
    """Transaction already matched, or the period was already reconciled."""

    pass


class IncompleteReconciliationError(ReconciliationError):
    """Completion blocked by unmatched bank transactions."""

    def __init__(self, unmatched_count: int):
        self.unmatched_count = unmatched_count
        super().__init__(
            f"Cannot complete reconciliation. {unmatched_count} unmatched "
            f"transactions remaining."
        )


class WorkflowError(ConflictError):
    """Workflow step invoked out of order."""

    pass


class PersistenceError(ReconciliationError):
    """The backend failed to store or return data."""

    pass


class StatementParseError(ReconciliationError):
    """Error parsing a bank statement or ledger file."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
