"""
File-backed reconciliation backend.

Statements and ledgers are parsed locally and completed reconciliations are
kept in a JSON history file, written atomically.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional
import json
import logging
import os
import tempfile
import uuid

from ..config import ReconConfig
from ..models.transaction import (
    CompletionRequest,
    Reconciliation,
    ReconciliationStatus,
    StatementImport,
)
from ..parsers.ledger_parser import LedgerParser
from ..parsers.statement_parser import StatementParser
from ..utils.exceptions import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
)
from .base import ReconciliationBackend
from .serialization import (
    completion_request_to_dict,
    reconciliation_from_dict,
    reconciliation_to_dict,
)

logger = logging.getLogger(__name__)


class LocalFileBackend(ReconciliationBackend):
    """Backend that needs nothing but the local filesystem."""

    def __init__(
        self,
        config: ReconConfig,
        history_file: Path,
        ledger_file: Optional[Path] = None,
    ):
        """
        Initialize the backend.

        Args:
            config: Application configuration (parser settings)
            history_file: JSON file holding completed reconciliations
            ledger_file: CSV/JSON of system transactions offered on import
        """
        self.config = config
        self.history_file = Path(history_file)
        self.ledger_file = Path(ledger_file) if ledger_file else None

    def import_statement(
        self, company_id: str, account_id: str, file_path: Path
    ) -> StatementImport:
        if self.ledger_file is None:
            raise ConfigurationError("No ledger file configured for local imports")

        bank_transactions = StatementParser(self.config).parse_file(file_path)
        system_transactions = LedgerParser(self.config).parse_file(self.ledger_file)

        logger.info(
            f"Imported {len(bank_transactions)} statement lines for account {account_id}"
        )
        return StatementImport(bank_transactions, system_transactions)

    def persist_match(
        self,
        company_id: str,
        bank_txn_id: str,
        system_txn_id: str,
        account_id: Optional[str] = None,
    ) -> None:
        store = self._read()
        _pending(store, company_id, account_id)[bank_txn_id] = system_txn_id
        self._write(store)

    def persist_unmatch(
        self, company_id: str, bank_txn_id: str, account_id: Optional[str] = None
    ) -> None:
        store = self._read()
        _pending(store, company_id, account_id).pop(bank_txn_id, None)
        _prune_pending(store, company_id, account_id)
        self._write(store)

    def complete_reconciliation(self, request: CompletionRequest) -> Reconciliation:
        store = self._read()
        records = store.setdefault("reconciliations", [])

        for existing in records:
            if existing.get("companyId") != request.company_id:
                continue
            record = reconciliation_from_dict(existing)
            if (
                record.account_id == request.account_id
                and record.status == ReconciliationStatus.COMPLETED
                and record.start_date <= request.end_date
                and request.start_date <= record.end_date
            ):
                raise ConflictError(
                    f"Account {request.account_id} already reconciled for "
                    f"{record.start_date} to {record.end_date} ({record.id})"
                )

        reconciliation = Reconciliation(
            id=str(uuid.uuid4()),
            account_id=request.account_id,
            start_date=request.start_date,
            end_date=request.end_date,
            opening_balance=request.opening_balance,
            closing_balance=request.closing_balance,
            status=ReconciliationStatus.COMPLETED,
            matched_count=request.summary.matched_count,
            unmatched_count=request.summary.unmatched_count,
            created_at=datetime.now(),
        )

        entry = completion_request_to_dict(request)
        entry.update(reconciliation_to_dict(reconciliation))
        records.append(entry)

        pending = _pending(store, request.company_id, request.account_id)
        for txn in request.bank_transactions:
            pending.pop(txn.id, None)
        _prune_pending(store, request.company_id, request.account_id)

        self._write(store)
        logger.info(f"Stored reconciliation {reconciliation.id} in {self.history_file}")
        return reconciliation

    def list_reconciliations(
        self, company_id: str, account_id: Optional[str] = None
    ) -> list[Reconciliation]:
        records = [
            reconciliation_from_dict(entry)
            for entry in self._read().get("reconciliations", [])
            if entry.get("companyId") == company_id
        ]
        if account_id:
            records = [r for r in records if r.account_id == account_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def get_reconciliation(self, company_id: str, reconciliation_id: str) -> Reconciliation:
        for entry in self._read().get("reconciliations", []):
            if entry.get("companyId") == company_id and entry.get("id") == reconciliation_id:
                return reconciliation_from_dict(entry)
        raise NotFoundError(f"Reconciliation not found: {reconciliation_id}")

    def _read(self) -> dict[str, Any]:
        if not self.history_file.exists():
            return {}
        try:
            with open(self.history_file, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {self.history_file}: {e}") from e

    def _write(self, data: dict[str, Any]) -> None:
        """Write via a temp file in the same directory, then rename over."""
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.history_file.parent, prefix=f".{self.history_file.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.history_file)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(f"Cannot write {self.history_file}: {e}") from e


def _pending(store: dict[str, Any], company_id: str, account_id: Optional[str]) -> dict:
    """Pending matches of one company and account, created on demand."""
    companies = store.setdefault("pendingMatches", {})
    return companies.setdefault(company_id, {}).setdefault(account_id or "", {})


def _prune_pending(store: dict[str, Any], company_id: str, account_id: Optional[str]) -> None:
    """Drop empty pending-match containers left behind by unmatch or completion."""
    companies = store.get("pendingMatches", {})
    accounts = companies.get(company_id, {})
    if not accounts.get(account_id or "", True):
        del accounts[account_id or ""]
    if company_id in companies and not accounts:
        del companies[company_id]
    if "pendingMatches" in store and not companies:
        del store["pendingMatches"]
