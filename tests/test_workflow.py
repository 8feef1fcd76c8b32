"""Tests for the four-step reconciliation workflow."""

from pathlib import Path

import pytest

from statement_recon.config import ReconConfig
from statement_recon.matching.workflow import ReconciliationWorkflow, WorkflowStep
from statement_recon.models.transaction import StatementImport
from statement_recon.utils.exceptions import (
    PersistenceError,
    StatementParseError,
    ValidationError,
    WorkflowError,
)
from tests.conftest import FakeBackend

STATEMENT = Path("statement.csv")


@pytest.fixture
def workflow(bank_lines, ledger_lines):
    backend = FakeBackend(StatementImport(bank_lines, ledger_lines))
    return ReconciliationWorkflow("acme", backend)


def test_happy_path(workflow):
    assert workflow.step == WorkflowStep.SELECTING_ACCOUNT

    workflow.select_account("chk-01")
    assert workflow.step == WorkflowStep.IMPORTING_STATEMENT

    session = workflow.import_statement(STATEMENT)
    assert workflow.step == WorkflowStep.MATCHING
    assert session.account_id == "chk-01"
    assert session.company_id == "acme"

    for bank_id, system_id in (("b1", "s1"), ("b2", "s2"), ("b3", "s3")):
        session.match(bank_id, system_id)

    result = workflow.complete()
    assert workflow.step == WorkflowStep.COMPLETED
    assert result.summary.unmatched_count == 0


def test_steps_cannot_be_skipped(workflow):
    with pytest.raises(WorkflowError):
        workflow.import_statement(STATEMENT)
    with pytest.raises(WorkflowError):
        workflow.complete()
    with pytest.raises(WorkflowError):
        workflow.session


def test_steps_cannot_go_back(workflow):
    workflow.select_account("chk-01")
    with pytest.raises(WorkflowError):
        workflow.select_account("chk-02")


def test_failed_import_stays_on_import_step(workflow):
    workflow.select_account("chk-01")
    workflow.backend.fail_with = StatementParseError("bad file")

    with pytest.raises(StatementParseError):
        workflow.import_statement(STATEMENT)
    assert workflow.step == WorkflowStep.IMPORTING_STATEMENT


def test_empty_import_is_rejected(ledger_lines):
    workflow = ReconciliationWorkflow("acme", FakeBackend(StatementImport([], ledger_lines)))
    workflow.select_account("chk-01")

    with pytest.raises(ValidationError):
        workflow.import_statement(STATEMENT)
    assert workflow.step == WorkflowStep.IMPORTING_STATEMENT


def test_failed_completion_stays_in_matching(workflow):
    workflow.select_account("chk-01")
    session = workflow.import_statement(STATEMENT)
    session.match("b1", "s1")
    workflow.backend.fail_with = PersistenceError("down")

    with pytest.raises(PersistenceError):
        workflow.complete(allow_partial=True)

    assert workflow.step == WorkflowStep.MATCHING
    assert workflow.session.matched_system_id("b1") == "s1"


def test_start_new_discards_session(workflow):
    workflow.select_account("chk-01")
    workflow.import_statement(STATEMENT).match("b1", "s1")

    workflow.start_new()

    assert workflow.step == WorkflowStep.SELECTING_ACCOUNT
    assert workflow.account_id is None
    assert workflow.backend.completed == []
    with pytest.raises(WorkflowError):
        workflow.session


def test_start_new_after_completion(workflow):
    workflow.select_account("chk-01")
    workflow.import_statement(STATEMENT)
    workflow.complete(allow_partial=True)

    workflow.start_new()
    workflow.select_account("chk-02")
    assert workflow.step == WorkflowStep.IMPORTING_STATEMENT


def test_auto_match_on_import(bank_lines, ledger_lines):
    config = ReconConfig()
    config.matching.auto_match = True
    workflow = ReconciliationWorkflow(
        "acme", FakeBackend(StatementImport(bank_lines, ledger_lines)), config=config
    )
    workflow.select_account("chk-01")

    session = workflow.import_statement(STATEMENT)

    assert session.summary().matched_count == 2


def test_incremental_persistence_from_config(bank_lines, ledger_lines):
    config = ReconConfig()
    config.matching.persist_incrementally = True
    backend = FakeBackend(StatementImport(bank_lines, ledger_lines))
    workflow = ReconciliationWorkflow("acme", backend, config=config)
    workflow.select_account("chk-01")

    workflow.import_statement(STATEMENT).match("b1", "s1")

    assert backend.persisted_matches == [("acme", "chk-01", "b1", "s1")]


def test_start_new_rolls_back_incremental_matches(bank_lines, ledger_lines):
    backend = FakeBackend(StatementImport(bank_lines, ledger_lines))
    workflow = ReconciliationWorkflow("acme", backend, persist_incrementally=True)
    workflow.select_account("chk-01")
    workflow.import_statement(STATEMENT).match("b1", "s1")

    workflow.start_new()

    assert backend.persisted_unmatches == [("acme", "chk-01", "b1")]
    assert workflow.step == WorkflowStep.SELECTING_ACCOUNT


def test_start_new_failure_keeps_session(bank_lines, ledger_lines):
    backend = FakeBackend(StatementImport(bank_lines, ledger_lines))
    workflow = ReconciliationWorkflow("acme", backend, persist_incrementally=True)
    workflow.select_account("chk-01")
    workflow.import_statement(STATEMENT).match("b1", "s1")
    backend.fail_persist_with = PersistenceError("timeout")

    with pytest.raises(PersistenceError):
        workflow.start_new()

    assert workflow.step == WorkflowStep.MATCHING
    assert workflow.session.matched_system_id("b1") == "s1"
