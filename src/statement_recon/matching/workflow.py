"""
Four-step reconciliation workflow: select account, import statement,
match transactions, completed.
"""

from enum import Enum
from pathlib import Path
from typing import Optional
import logging

from ..backend.base import ReconciliationBackend
from ..config import ReconConfig
from ..models.transaction import CompletionResult, Reconciliation
from ..utils.exceptions import WorkflowError
from .session import ReconciliationSession
from .strategies import SuggestionStrategy, build_strategy

logger = logging.getLogger(__name__)


class WorkflowStep(Enum):
    """Steps of the workflow, in order."""

    SELECTING_ACCOUNT = "select_account"
    IMPORTING_STATEMENT = "import_statement"
    MATCHING = "match_transactions"
    COMPLETED = "completed"


class ReconciliationWorkflow:
    """
    Drives one reconciliation from account selection to completion.

    Transitions only move forward; ``start_new`` is the single way back and
    discards whatever session is in progress.
    """

    def __init__(
        self,
        company_id: str,
        backend: ReconciliationBackend,
        config: Optional[ReconConfig] = None,
        strategy: Optional[SuggestionStrategy] = None,
        persist_incrementally: Optional[bool] = None,
    ):
        self.company_id = company_id
        self.backend = backend
        self.config = config or ReconConfig()
        self.strategy = strategy or build_strategy(self.config)
        self.persist_incrementally = (
            self.config.matching.persist_incrementally
            if persist_incrementally is None
            else persist_incrementally
        )

        self.step = WorkflowStep.SELECTING_ACCOUNT
        self.account_id: Optional[str] = None
        self._session: Optional[ReconciliationSession] = None

    @property
    def session(self) -> ReconciliationSession:
        if self._session is None or self.step not in (
            WorkflowStep.MATCHING,
            WorkflowStep.COMPLETED,
        ):
            raise WorkflowError(f"No active session in step {self.step.value}")
        return self._session

    def select_account(self, account_id: str) -> None:
        self._expect(WorkflowStep.SELECTING_ACCOUNT)
        self.account_id = account_id
        self.step = WorkflowStep.IMPORTING_STATEMENT
        logger.debug(f"Selected account {account_id}")

    def import_statement(self, file_path: Path) -> ReconciliationSession:
        """
        Import a statement and open a matching session.

        The step only advances if both the import and the load succeed.
        """
        self._expect(WorkflowStep.IMPORTING_STATEMENT)

        imported = self.backend.import_statement(self.company_id, self.account_id, file_path)
        session = ReconciliationSession(
            company_id=self.company_id,
            account_id=self.account_id,
            strategy=self.strategy,
            backend=self.backend,
            persist_incrementally=self.persist_incrementally,
        )
        session.load_statement(imported.bank_transactions, imported.system_transactions)

        if self.config.matching.auto_match:
            session.auto_match()

        self._session = session
        self.step = WorkflowStep.MATCHING
        return session

    def complete(self, allow_partial: bool = False) -> CompletionResult:
        """Complete the session; on any failure the workflow stays in MATCHING."""
        self._expect(WorkflowStep.MATCHING)
        result = self._session.complete(allow_partial=allow_partial)
        self.step = WorkflowStep.COMPLETED
        return result

    def start_new(self) -> None:
        """
        Abandon the current session and return to account selection.

        Matches an in-progress session already saved incrementally are
        unmatched through the backend first. If that fails the error
        propagates and the workflow keeps its current session.
        """
        if self._session is not None and not self._session.is_completed:
            logger.info(f"Discarding in-progress session for account {self.account_id}")
            self._session.discard()
        self._session = None
        self.account_id = None
        self.step = WorkflowStep.SELECTING_ACCOUNT

    def history(self) -> list[Reconciliation]:
        return self.backend.list_reconciliations(self.company_id, self.account_id)

    def _expect(self, step: WorkflowStep) -> None:
        if self.step != step:
            raise WorkflowError(
                f"Expected workflow step {step.value}, currently {self.step.value}"
            )
