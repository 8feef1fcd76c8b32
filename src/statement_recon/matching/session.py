"""
In-memory matching session for one bank account and one imported statement.

Match state lives in a bidirectional index keyed by both transaction ids.
The ``matched`` flags seen by callers are derived from that index, so the
bank side and the ledger side can never disagree.
"""

from dataclasses import replace
from itertools import groupby
from decimal import Decimal
from typing import Iterable, Optional
import logging

from ..backend.base import ReconciliationBackend
from ..models.transaction import (
    ZERO,
    BankTransaction,
    SystemTransaction,
    MatchRelation,
    SessionSummary,
    CompletionRequest,
    CompletionResult,
)
from ..utils.exceptions import (
    ValidationError,
    NotFoundError,
    ConflictError,
    IncompleteReconciliationError,
    PersistenceError,
    WorkflowError,
)
from .strategies import SuggestionStrategy, SameDayAmountStrategy

logger = logging.getLogger(__name__)


class ReconciliationSession:
    """
    Matching state between imported bank lines and ledger candidates.

    Operations run to completion one at a time; nothing here is shared
    between threads. Only ``complete`` (and, when enabled, incremental
    persistence) talks to the backend.
    """

    def __init__(
        self,
        company_id: str,
        account_id: str,
        strategy: Optional[SuggestionStrategy] = None,
        backend: Optional[ReconciliationBackend] = None,
        persist_incrementally: bool = False,
    ):
        """
        Initialize an empty session.

        Args:
            company_id: Company owning the account
            account_id: Bank account being reconciled
            strategy: Candidate filter (defaults to same day, same amount)
            backend: Persistence collaborator used by ``complete``
            persist_incrementally: Also persist every match/unmatch
        """
        if persist_incrementally and backend is None:
            raise ValueError("persist_incrementally requires a backend")

        self.company_id = company_id
        self.account_id = account_id
        self.strategy = strategy or SameDayAmountStrategy()
        self.backend = backend
        self.persist_incrementally = persist_incrementally

        self._bank: dict[str, BankTransaction] = {}
        self._system: dict[str, SystemTransaction] = {}
        # bank id -> relation, system id -> bank id
        self._by_bank: dict[str, MatchRelation] = {}
        self._by_system: dict[str, str] = {}

        self._loaded = False
        self._result: Optional[CompletionResult] = None

    # Loading

    def load_statement(
        self,
        bank_transactions: Iterable[BankTransaction],
        system_transactions: Iterable[SystemTransaction],
    ) -> "ReconciliationSession":
        """
        Load the transactions of one statement import.

        Incoming ``matched`` flags are ignored; the session starts with no
        matches.

        Returns:
            The session itself

        Raises:
            ValidationError: If either list is empty, has duplicate ids, or a
                bank line carries an invalid debit/credit pair
        """
        if self._result is not None:
            raise WorkflowError("Cannot reload a completed reconciliation")

        bank_list = list(bank_transactions)
        system_list = list(system_transactions)

        if not bank_list:
            raise ValidationError("Statement contains no bank transactions")
        if not system_list:
            raise ValidationError("No system transactions to match against")

        bank_index = _index_by_id(bank_list, "bank")
        system_index = _index_by_id(system_list, "system")

        for txn in bank_list:
            if txn.debit < 0 or txn.credit < 0:
                raise ValidationError(f"Bank transaction {txn.id} has a negative amount")
            if txn.debit > 0 and txn.credit > 0:
                raise ValidationError(
                    f"Bank transaction {txn.id} has both a debit and a credit"
                )

        self._bank = {
            tid: replace(txn, matched=False, matched_with=None)
            for tid, txn in bank_index.items()
        }
        self._system = {tid: replace(txn, matched=False) for tid, txn in system_index.items()}
        self._by_bank = {}
        self._by_system = {}
        self._loaded = True

        logger.info(
            f"Loaded statement for account {self.account_id}: "
            f"{len(self._bank)} bank txns, {len(self._system)} system txns"
        )
        return self

    # Queries

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def is_completed(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> Optional[CompletionResult]:
        return self._result

    def bank_transactions(self) -> list[BankTransaction]:
        """All bank transactions in statement order, with current match flags."""
        return [self._bank_view(t) for t in self._bank.values()]

    def system_transactions(self) -> list[SystemTransaction]:
        """All system transactions in ledger order, with current match flags."""
        return [self._system_view(t) for t in self._system.values()]

    def get_bank_transaction(self, bank_txn_id: str) -> BankTransaction:
        if bank_txn_id not in self._bank:
            raise NotFoundError(f"Bank transaction not found: {bank_txn_id}")
        return self._bank_view(self._bank[bank_txn_id])

    def get_system_transaction(self, system_txn_id: str) -> SystemTransaction:
        if system_txn_id not in self._system:
            raise NotFoundError(f"System transaction not found: {system_txn_id}")
        return self._system_view(self._system[system_txn_id])

    def matched_system_id(self, bank_txn_id: str) -> Optional[str]:
        relation = self._by_bank.get(bank_txn_id)
        return relation.system_transaction_id if relation else None

    def matches(self) -> list[MatchRelation]:
        """Active relations in statement order."""
        return [self._by_bank[tid] for tid in self._bank if tid in self._by_bank]

    def unmatched_bank(self) -> list[BankTransaction]:
        return [self._bank_view(t) for tid, t in self._bank.items() if tid not in self._by_bank]

    def unmatched_system(self) -> list[SystemTransaction]:
        return [
            self._system_view(t) for tid, t in self._system.items() if tid not in self._by_system
        ]

    def search(self, term: str) -> list[BankTransaction]:
        """Bank transactions whose description or reference contains ``term``."""
        needle = term.lower()
        return [
            self._bank_view(t)
            for t in self._bank.values()
            if needle in t.description.lower() or needle in t.reference.lower()
        ]

    def summary(self) -> SessionSummary:
        matched = len(self._by_bank)
        return SessionSummary(
            matched_count=matched,
            unmatched_count=len(self._bank) - matched,
            unmatched_system_count=len(self._system) - len(self._by_system),
        )

    # Matching

    def select_for_matching(self, bank_txn_id: str) -> list[SystemTransaction]:
        """
        Suggest unmatched system transactions for an unmatched bank line.

        Returns:
            Qualifying candidates (possibly empty)

        Raises:
            NotFoundError: If the id is unknown or the line is already matched
        """
        self._require_loaded()
        if bank_txn_id not in self._bank:
            raise NotFoundError(f"Bank transaction not found: {bank_txn_id}")
        if bank_txn_id in self._by_bank:
            raise NotFoundError(f"Bank transaction already matched: {bank_txn_id}")

        unmatched = [t for tid, t in self._system.items() if tid not in self._by_system]
        candidates = self.strategy.find_candidates(self._bank[bank_txn_id], unmatched)
        logger.debug(
            f"{len(candidates)} candidate(s) for {bank_txn_id} ({self.strategy.describe()})"
        )
        return [self._system_view(t) for t in candidates]

    def match(self, bank_txn_id: str, system_txn_id: str) -> MatchRelation:
        """
        Pair a bank transaction with a system transaction.

        Raises:
            NotFoundError: If either id is unknown
            ConflictError: If either side is already matched
        """
        self._require_mutable()
        if bank_txn_id not in self._bank:
            raise NotFoundError(f"Bank transaction not found: {bank_txn_id}")
        if system_txn_id not in self._system:
            raise NotFoundError(f"System transaction not found: {system_txn_id}")
        if bank_txn_id in self._by_bank:
            raise ConflictError(
                f"Bank transaction {bank_txn_id} is already matched with "
                f"{self._by_bank[bank_txn_id].system_transaction_id}"
            )
        if system_txn_id in self._by_system:
            raise ConflictError(
                f"System transaction {system_txn_id} is already matched with "
                f"{self._by_system[system_txn_id]}"
            )

        if self.persist_incrementally:
            self.backend.persist_match(
                self.company_id, bank_txn_id, system_txn_id, account_id=self.account_id
            )

        relation = MatchRelation(bank_txn_id, system_txn_id)
        self._by_bank[bank_txn_id] = relation
        self._by_system[system_txn_id] = bank_txn_id

        logger.info(f"Matched bank transaction {bank_txn_id} with {system_txn_id}")
        return relation

    def unmatch(self, bank_txn_id: str) -> None:
        """
        Remove the active match of a bank transaction.

        Raises:
            NotFoundError: If the id is unknown or has no active match
        """
        self._require_mutable()
        if bank_txn_id not in self._bank:
            raise NotFoundError(f"Bank transaction not found: {bank_txn_id}")
        if bank_txn_id not in self._by_bank:
            raise NotFoundError(f"Bank transaction is not matched: {bank_txn_id}")

        if self.persist_incrementally:
            self.backend.persist_unmatch(
                self.company_id, bank_txn_id, account_id=self.account_id
            )

        relation = self._by_bank.pop(bank_txn_id)
        del self._by_system[relation.system_transaction_id]

        logger.info(f"Unmatched bank transaction {bank_txn_id}")

    def auto_match(self) -> list[MatchRelation]:
        """
        Match every unambiguous pair.

        A pair is unambiguous when the bank line has exactly one candidate
        and that candidate qualifies for no other unmatched bank line.

        Returns:
            Relations created by this call
        """
        self._require_mutable()

        candidates_by_bank: dict[str, list[str]] = {}
        claims: dict[str, int] = {}
        for bank_id in self._bank:
            if bank_id in self._by_bank:
                continue
            ids = [t.id for t in self.select_for_matching(bank_id)]
            candidates_by_bank[bank_id] = ids
            for system_id in ids:
                claims[system_id] = claims.get(system_id, 0) + 1

        created: list[MatchRelation] = []
        for bank_id, ids in candidates_by_bank.items():
            if len(ids) == 1 and claims[ids[0]] == 1:
                created.append(self.match(bank_id, ids[0]))

        logger.info(
            f"Auto-matched {len(created)} of {len(candidates_by_bank)} unmatched bank txns"
        )
        return created

    def discard(self) -> None:
        """
        Drop every active match of an abandoned session.

        With incremental persistence each relation is unmatched through the
        backend, so nothing saved so far outlives the session. A backend
        failure stops the loop with the remaining matches still in place.
        """
        self._require_mutable()
        for relation in self.matches():
            self.unmatch(relation.bank_transaction_id)

    # Completion

    def complete(self, allow_partial: bool = False) -> CompletionResult:
        """
        Persist the session as a reconciliation record.

        Backend failures propagate unchanged and leave every match in place,
        so the call can simply be retried.

        Args:
            allow_partial: Complete even with unmatched bank transactions

        Raises:
            IncompleteReconciliationError: Unmatched lines and no override
            ConflictError: Session already completed, or rejected by the backend
            PersistenceError: No backend, or the backend failed
        """
        self._require_mutable()

        summary = self.summary()
        if summary.unmatched_count > 0 and not allow_partial:
            raise IncompleteReconciliationError(summary.unmatched_count)
        if self.backend is None:
            raise PersistenceError("No backend configured to persist the reconciliation")

        request = self._build_request(summary)
        try:
            reconciliation = self.backend.complete_reconciliation(request)
        except (ConflictError, PersistenceError) as e:
            logger.error(f"Completing reconciliation for {self.account_id} failed: {e}")
            raise

        self._result = CompletionResult(
            reconciliation=reconciliation,
            summary=summary,
            partial=summary.unmatched_count > 0,
        )
        logger.info(
            f"Completed reconciliation {reconciliation.id} for account {self.account_id}: "
            f"{summary.matched_count} matched, {summary.unmatched_count} unmatched"
        )
        return self._result

    def _build_request(self, summary: SessionSummary) -> CompletionRequest:
        lines = _chronological(self._bank.values())
        opening, closing = _statement_balances(lines)
        return CompletionRequest(
            company_id=self.company_id,
            account_id=self.account_id,
            bank_transactions=self.bank_transactions(),
            system_transactions=self.system_transactions(),
            matches=self.matches(),
            start_date=lines[0].date,
            end_date=lines[-1].date,
            opening_balance=opening,
            closing_balance=closing,
            summary=summary,
        )

    # Internals

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise WorkflowError("No statement loaded")

    def _require_mutable(self) -> None:
        self._require_loaded()
        if self._result is not None:
            raise ConflictError("Cannot modify completed reconciliation")

    def _bank_view(self, txn: BankTransaction) -> BankTransaction:
        relation = self._by_bank.get(txn.id)
        if relation is None:
            return replace(txn)
        return replace(txn, matched=True, matched_with=relation.system_transaction_id)

    def _system_view(self, txn: SystemTransaction) -> SystemTransaction:
        return replace(txn, matched=txn.id in self._by_system)


def _index_by_id(transactions: list, label: str) -> dict:
    index: dict = {}
    for txn in transactions:
        if txn.id in index:
            raise ValidationError(f"Duplicate {label} transaction id: {txn.id}")
        index[txn.id] = txn
    return index


def _chronological(transactions: Iterable[BankTransaction]) -> list[BankTransaction]:
    """
    Order statement lines oldest first.

    Lines are sorted by date. Within one day the file order is kept unless
    the running balances only chain up when read backwards, as they do for
    newest-first exports.
    """
    ordered: list[BankTransaction] = []
    for _, group in groupby(sorted(transactions, key=lambda t: t.date), key=lambda t: t.date):
        day = list(group)
        if not _balances_chain(day) and _balances_chain(day[::-1]):
            day.reverse()
        ordered.extend(day)
    return ordered


def _balances_chain(lines: list[BankTransaction]) -> bool:
    """True if each line's balance follows from the previous one."""
    for prev, txn in zip(lines, lines[1:]):
        if prev.running_balance is None or txn.running_balance is None:
            return False
        if txn.running_balance - txn.net_change != prev.running_balance:
            return False
    return True


def _statement_balances(lines: list[BankTransaction]) -> tuple[Decimal, Decimal]:
    """Opening and closing balance of date-ordered statement lines."""
    net = sum((t.net_change for t in lines), ZERO)
    first, last = lines[0], lines[-1]

    if first.running_balance is not None:
        opening = first.running_balance - first.net_change
    elif last.running_balance is not None:
        opening = last.running_balance - net
    else:
        opening = ZERO

    closing = last.running_balance if last.running_balance is not None else opening + net
    return opening, closing
