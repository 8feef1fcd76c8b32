"""Data models for statement reconciliation."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

ZERO = Decimal("0")


class TransactionType(Enum):
    """Direction of a transaction from the bank account's point of view."""

    DEBIT = "debit"  # Money out
    CREDIT = "credit"  # Money in


class ReconciliationStatus(Enum):
    """Lifecycle status of a persisted reconciliation record."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class BankTransaction:
    """
    One line of an imported bank statement.

    Exactly one of ``debit``/``credit`` carries the amount. The ``matched``
    and ``matched_with`` fields are written only by the owning session.
    """

    id: str
    date: date
    description: str = ""
    reference: str = ""
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    running_balance: Optional[Decimal] = None

    matched: bool = False
    matched_with: Optional[str] = None

    raw_data: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def type(self) -> TransactionType:
        return TransactionType.DEBIT if self.debit > 0 else TransactionType.CREDIT

    @property
    def amount(self) -> Decimal:
        """Unsigned amount of the line."""
        return self.debit if self.debit > 0 else self.credit

    @property
    def signed_amount(self) -> Decimal:
        """Debits positive, credits negative."""
        return self.debit - self.credit

    @property
    def net_change(self) -> Decimal:
        """Effect on the account balance (credits increase it)."""
        return self.credit - self.debit


@dataclass
class SystemTransaction:
    """Ledger-side transaction offered as a matching candidate."""

    id: str
    date: date
    amount: Decimal
    type: TransactionType
    reference: str = ""
    description: str = ""

    matched: bool = False

    raw_data: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def signed_amount(self) -> Decimal:
        """Debits positive, credits negative, regardless of the stored sign."""
        magnitude = abs(self.amount)
        return magnitude if self.type == TransactionType.DEBIT else -magnitude


@dataclass(frozen=True)
class MatchRelation:
    """An active pairing of one bank transaction with one system transaction."""

    bank_transaction_id: str
    system_transaction_id: str
    matched_at: datetime = field(default_factory=datetime.now, compare=False)


@dataclass(frozen=True)
class SessionSummary:
    """Match counts for a session; counts refer to bank transactions."""

    matched_count: int
    unmatched_count: int
    unmatched_system_count: int = 0

    @property
    def total(self) -> int:
        return self.matched_count + self.unmatched_count

    @property
    def match_rate(self) -> float:
        """Percentage of bank transactions matched."""
        if self.total == 0:
            return 0.0
        return (self.matched_count / self.total) * 100


@dataclass
class Reconciliation:
    """Historical reconciliation record created by the backend."""

    id: str
    account_id: str
    start_date: date
    end_date: date
    opening_balance: Decimal
    closing_balance: Decimal
    status: ReconciliationStatus
    matched_count: int
    unmatched_count: int
    created_at: datetime = field(default_factory=datetime.now)
    account_name: Optional[str] = None


@dataclass
class CompletionRequest:
    """Everything persisted when a session completes, as a single unit."""

    company_id: str
    account_id: str
    bank_transactions: list[BankTransaction]
    system_transactions: list[SystemTransaction]
    matches: list[MatchRelation]
    start_date: date
    end_date: date
    opening_balance: Decimal
    closing_balance: Decimal
    summary: SessionSummary


@dataclass
class CompletionResult:
    """Outcome of a successful ``complete`` call."""

    reconciliation: Reconciliation
    summary: SessionSummary
    partial: bool = False


@dataclass
class StatementImport:
    """Transactions returned by a statement import."""

    bank_transactions: list[BankTransaction]
    system_transactions: list[SystemTransaction]
