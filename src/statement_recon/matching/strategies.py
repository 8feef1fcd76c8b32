"""
Candidate suggestion strategies.
Each strategy decides whether a system transaction could be the ledger
counterpart of a bank transaction, and how good a candidate it is.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from ..config import ReconConfig
from ..models.transaction import BankTransaction, SystemTransaction

DEFAULT_AMOUNT_TOLERANCE = Decimal("0.01")


class SuggestionStrategy(ABC):
    """Abstract base class for suggestion strategies."""

    @abstractmethod
    def is_candidate(self, bank_txn: BankTransaction, system_txn: SystemTransaction) -> bool:
        """
        Check whether a system transaction qualifies for a bank transaction.

        Args:
            bank_txn: Bank transaction being matched
            system_txn: Candidate system transaction

        Returns:
            True if the pair passes every filter of the strategy
        """
        pass

    @abstractmethod
    def score(self, bank_txn: BankTransaction, system_txn: SystemTransaction) -> float:
        """
        Rank a qualifying candidate.

        Only meaningful for pairs that pass ``is_candidate``.

        Returns:
            Score in (0, 1], higher is a closer match
        """
        pass

    @abstractmethod
    def describe(self) -> str:
        """Human-readable description of the filters applied."""
        pass

    def find_candidates(
        self,
        bank_txn: BankTransaction,
        system_txns: list[SystemTransaction],
    ) -> list[SystemTransaction]:
        """Filter candidates, best score first; ties keep ledger order."""
        candidates = [t for t in system_txns if self.is_candidate(bank_txn, t)]
        candidates.sort(key=lambda t: self.score(bank_txn, t), reverse=True)
        return candidates


class SameDayAmountStrategy(SuggestionStrategy):
    """Same signed amount within tolerance, dated on the same calendar day."""

    def __init__(self, amount_tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE):
        self.amount_tolerance = Decimal(str(amount_tolerance))

    def _amount_diff(self, bank_txn: BankTransaction, system_txn: SystemTransaction) -> Decimal:
        return abs(bank_txn.signed_amount - system_txn.signed_amount)

    def _amount_matches(self, bank_txn: BankTransaction, system_txn: SystemTransaction) -> bool:
        return self._amount_diff(bank_txn, system_txn) < self.amount_tolerance

    def is_candidate(self, bank_txn: BankTransaction, system_txn: SystemTransaction) -> bool:
        return bank_txn.date == system_txn.date and self._amount_matches(bank_txn, system_txn)

    def score(self, bank_txn: BankTransaction, system_txn: SystemTransaction) -> float:
        # 1.0 for an exact amount, approaching 0 at the tolerance
        return 1.0 - float(self._amount_diff(bank_txn, system_txn) / self.amount_tolerance)

    def describe(self) -> str:
        return f"same day, amount within {self.amount_tolerance}"


class DateWindowStrategy(SameDayAmountStrategy):
    """
    Same signed amount within tolerance, dated within +/- ``window_days``.

    Allows for bank processing delays between the ledger entry and the
    statement line. Closer dates always rank first; amount closeness only
    breaks ties between equally distant dates.
    """

    def __init__(
        self,
        window_days: int,
        amount_tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE,
    ):
        super().__init__(amount_tolerance)
        if window_days < 0:
            raise ValueError("window_days must not be negative")
        self.window_days = window_days

    def is_candidate(self, bank_txn: BankTransaction, system_txn: SystemTransaction) -> bool:
        date_diff = abs((bank_txn.date - system_txn.date).days)
        return date_diff <= self.window_days and self._amount_matches(bank_txn, system_txn)

    def score(self, bank_txn: BankTransaction, system_txn: SystemTransaction) -> float:
        date_diff = abs((bank_txn.date - system_txn.date).days)
        amount_score = super().score(bank_txn, system_txn)
        return (self.window_days + 1 - date_diff + amount_score) / (self.window_days + 2)

    def describe(self) -> str:
        return f"within {self.window_days} day(s), amount within {self.amount_tolerance}"


def build_strategy(config: ReconConfig) -> SuggestionStrategy:
    """Build the suggestion strategy selected by configuration."""
    tolerance = Decimal(str(config.matching.amount_tolerance))
    if config.matching.date_window_days > 0:
        return DateWindowStrategy(config.matching.date_window_days, tolerance)
    return SameDayAmountStrategy(tolerance)
