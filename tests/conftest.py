"""Shared fixtures and helpers for the reconciliation test suite."""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import logging

import pytest

from statement_recon.backend.base import ReconciliationBackend
from statement_recon.config import ReconConfig
from statement_recon.matching.session import ReconciliationSession
from statement_recon.models.transaction import (
    BankTransaction,
    SystemTransaction,
    TransactionType,
    Reconciliation,
    ReconciliationStatus,
    StatementImport,
)
from statement_recon.utils.exceptions import NotFoundError


def make_bank(
    txn_id: str,
    on: str = "2024-01-15",
    debit: str = "0",
    credit: str = "0",
    balance: Optional[str] = None,
    description: str = "",
    reference: str = "",
) -> BankTransaction:
    return BankTransaction(
        id=txn_id,
        date=date.fromisoformat(on),
        description=description,
        reference=reference,
        debit=Decimal(debit),
        credit=Decimal(credit),
        running_balance=Decimal(balance) if balance is not None else None,
    )


def make_system(
    txn_id: str,
    on: str = "2024-01-15",
    amount: str = "0",
    txn_type: str = "debit",
    reference: str = "",
) -> SystemTransaction:
    return SystemTransaction(
        id=txn_id,
        date=date.fromisoformat(on),
        amount=Decimal(amount),
        type=TransactionType(txn_type),
        reference=reference,
    )


class FakeBackend(ReconciliationBackend):
    """In-memory backend that records calls and can be told to fail."""

    def __init__(self, statement: Optional[StatementImport] = None):
        self.statement = statement
        self.completed = []
        self.persisted_matches = []
        self.persisted_unmatches = []
        self.fail_with: Optional[Exception] = None
        self.fail_persist_with: Optional[Exception] = None

    def import_statement(self, company_id, account_id, file_path):
        if self.fail_with:
            raise self.fail_with
        return self.statement

    def persist_match(self, company_id, bank_txn_id, system_txn_id, account_id=None):
        if self.fail_persist_with:
            raise self.fail_persist_with
        self.persisted_matches.append((company_id, account_id, bank_txn_id, system_txn_id))

    def persist_unmatch(self, company_id, bank_txn_id, account_id=None):
        if self.fail_persist_with:
            raise self.fail_persist_with
        self.persisted_unmatches.append((company_id, account_id, bank_txn_id))

    def complete_reconciliation(self, request):
        if self.fail_with:
            raise self.fail_with
        self.completed.append(request)
        return Reconciliation(
            id=f"rec-{len(self.completed)}",
            account_id=request.account_id,
            start_date=request.start_date,
            end_date=request.end_date,
            opening_balance=request.opening_balance,
            closing_balance=request.closing_balance,
            status=ReconciliationStatus.COMPLETED,
            matched_count=request.summary.matched_count,
            unmatched_count=request.summary.unmatched_count,
            created_at=datetime(2024, 2, 1, 9, 0),
        )

    def list_reconciliations(self, company_id, account_id=None):
        return []

    def get_reconciliation(self, company_id, reconciliation_id):
        raise NotFoundError(f"Reconciliation not found: {reconciliation_id}")


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI attached to streams that CliRunner has closed."""
    yield
    logging.getLogger("statement_recon").handlers = []


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def bank_lines():
    """Three statement lines: two debits and one credit."""
    return [
        make_bank("b1", "2024-01-15", debit="500", balance="9500", reference="CHK-1001"),
        make_bank("b2", "2024-01-16", credit="1200", balance="10700", description="Customer deposit"),
        make_bank("b3", "2024-01-17", debit="75.50", balance="10624.50", description="Bank fee"),
    ]


@pytest.fixture
def ledger_lines():
    return [
        make_system("s1", "2024-01-15", amount="500", txn_type="debit"),
        make_system("s2", "2024-01-16", amount="1200", txn_type="credit"),
        make_system("s3", "2024-01-20", amount="75.50", txn_type="debit"),
    ]


@pytest.fixture
def session(backend, bank_lines, ledger_lines):
    """Loaded session over the three-line statement."""
    return ReconciliationSession("acme", "chk-01", backend=backend).load_statement(
        bank_lines, ledger_lines
    )


@pytest.fixture
def config():
    return ReconConfig()


@pytest.fixture
def statement_csv(tmp_path) -> Path:
    path = tmp_path / "statement.csv"
    path.write_text(
        "Date,Description,Reference,Debit,Credit,Balance\n"
        "2024-01-15,Check 1001,CHK-1001,500.00,,9500.00\n"
        "2024-01-16,Customer deposit,DEP-77,,\"1,200.00\",10700.00\n"
        "2024-01-17,Bank fee,,75.50,,10624.50\n"
    )
    return path


@pytest.fixture
def ledger_csv(tmp_path) -> Path:
    path = tmp_path / "ledger.csv"
    path.write_text(
        "ID,Date,Reference,Description,Amount,Type\n"
        "JE-1,2024-01-15,CHK-1001,Supplier payment,500.00,debit\n"
        "JE-2,2024-01-16,DEP-77,Invoice 42 receipt,1200.00,credit\n"
        "JE-3,2024-01-19,,Bank charges,75.50,debit\n"
    )
    return path
