"""
Backend collaborator interface.
The backend owns persistence; the session only talks to it through these calls.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..models.transaction import CompletionRequest, Reconciliation, StatementImport


class ReconciliationBackend(ABC):
    """Abstract base class for reconciliation backends."""

    @abstractmethod
    def import_statement(
        self, company_id: str, account_id: str, file_path: Path
    ) -> StatementImport:
        """
        Import a statement file for an account.

        Args:
            company_id: Company the account belongs to
            account_id: Bank account being reconciled
            file_path: CSV or JSON statement file

        Returns:
            Imported bank transactions and the ledger candidates for them
        """
        pass

    @abstractmethod
    def persist_match(
        self,
        company_id: str,
        bank_txn_id: str,
        system_txn_id: str,
        account_id: Optional[str] = None,
    ) -> None:
        """Store a single match relation of an in-progress session."""
        pass

    @abstractmethod
    def persist_unmatch(
        self, company_id: str, bank_txn_id: str, account_id: Optional[str] = None
    ) -> None:
        """Remove the stored match relation of a bank transaction."""
        pass

    @abstractmethod
    def complete_reconciliation(self, request: CompletionRequest) -> Reconciliation:
        """
        Persist a completed session as one unit.

        Raises:
            ConflictError: If the account was already reconciled for the period
            PersistenceError: If the record could not be stored
        """
        pass

    @abstractmethod
    def list_reconciliations(
        self, company_id: str, account_id: Optional[str] = None
    ) -> list[Reconciliation]:
        """Return prior reconciliations, newest first."""
        pass

    @abstractmethod
    def get_reconciliation(self, company_id: str, reconciliation_id: str) -> Reconciliation:
        """
        Return one prior reconciliation.

        Raises:
            NotFoundError: If the company has no reconciliation with that id
        """
        pass
