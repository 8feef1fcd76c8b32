"""Tests for the JSON-file backend."""

import json

import pytest

from statement_recon.backend import LocalFileBackend, build_backend, HttpReconciliationBackend
from statement_recon.matching.session import ReconciliationSession
from statement_recon.matching.workflow import ReconciliationWorkflow
from statement_recon.models.transaction import ReconciliationStatus
from statement_recon.utils.exceptions import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
)


@pytest.fixture
def local_backend(config, tmp_path, ledger_csv):
    return LocalFileBackend(config, history_file=tmp_path / "history.json", ledger_file=ledger_csv)


def _completed_session(local_backend, statement_csv, account_id="chk-01"):
    imported = local_backend.import_statement("acme", account_id, statement_csv)
    session = ReconciliationSession("acme", account_id, backend=local_backend)
    session.load_statement(imported.bank_transactions, imported.system_transactions)
    session.auto_match()
    return session.complete(allow_partial=True)


def test_import_reads_statement_and_ledger(local_backend, statement_csv):
    imported = local_backend.import_statement("acme", "chk-01", statement_csv)

    assert len(imported.bank_transactions) == 3
    assert [t.id for t in imported.system_transactions] == ["JE-1", "JE-2", "JE-3"]


def test_import_requires_ledger(config, tmp_path, statement_csv):
    backend = LocalFileBackend(config, history_file=tmp_path / "history.json")
    with pytest.raises(ConfigurationError):
        backend.import_statement("acme", "chk-01", statement_csv)


def test_complete_writes_history(local_backend, statement_csv):
    result = _completed_session(local_backend, statement_csv)

    stored = json.loads(local_backend.history_file.read_text())
    (entry,) = stored["reconciliations"]
    assert entry["id"] == result.reconciliation.id
    assert entry["companyId"] == "acme"
    assert entry["matchedCount"] == 2
    assert entry["unmatchedCount"] == 1
    assert len(entry["matches"]) == 2
    assert entry["openingBalance"] == 10000.0
    assert entry["closingBalance"] == 10624.5


def test_history_lists_records(local_backend, statement_csv):
    result = _completed_session(local_backend, statement_csv)

    (record,) = local_backend.list_reconciliations("acme")
    assert record.id == result.reconciliation.id
    assert record.status == ReconciliationStatus.COMPLETED
    assert str(record.start_date) == "2024-01-15"
    assert local_backend.list_reconciliations("other-co") == []
    assert local_backend.list_reconciliations("acme", "chk-99") == []


def test_overlapping_period_conflicts(local_backend, statement_csv):
    _completed_session(local_backend, statement_csv)
    with pytest.raises(ConflictError):
        _completed_session(local_backend, statement_csv)

    # A different account is independent
    _completed_session(local_backend, statement_csv, account_id="chk-02")
    assert len(local_backend.list_reconciliations("acme")) == 2


def test_pending_matches_are_kept_per_account(local_backend):
    local_backend.persist_match("acme", "b1", "s1", account_id="chk-01")
    local_backend.persist_match("acme", "b2", "s2", account_id="chk-01")
    local_backend.persist_match("acme", "b1", "s9", account_id="chk-02")
    local_backend.persist_unmatch("acme", "b1", account_id="chk-01")

    stored = json.loads(local_backend.history_file.read_text())
    assert stored["pendingMatches"] == {
        "acme": {"chk-01": {"b2": "s2"}, "chk-02": {"b1": "s9"}}
    }


def test_abandoned_incremental_session_leaves_nothing_behind(
    config, local_backend, statement_csv
):
    config.matching.persist_incrementally = True
    workflow = ReconciliationWorkflow("acme", local_backend, config=config)
    workflow.select_account("chk-01")
    workflow.import_statement(statement_csv).match("BANK-00001", "JE-1")

    stored = json.loads(local_backend.history_file.read_text())
    assert stored["pendingMatches"] == {"acme": {"chk-01": {"BANK-00001": "JE-1"}}}

    workflow.start_new()

    assert "pendingMatches" not in json.loads(local_backend.history_file.read_text())


def test_get_reconciliation(local_backend, statement_csv):
    result = _completed_session(local_backend, statement_csv)

    record = local_backend.get_reconciliation("acme", result.reconciliation.id)
    assert record.account_id == "chk-01"
    assert record.matched_count == 2
    with pytest.raises(NotFoundError):
        local_backend.get_reconciliation("other-co", result.reconciliation.id)
    with pytest.raises(NotFoundError):
        local_backend.get_reconciliation("acme", "missing")


def test_corrupt_history_file(local_backend):
    local_backend.history_file.write_text("{broken")
    with pytest.raises(PersistenceError):
        local_backend.list_reconciliations("acme")


def test_build_backend(config):
    assert isinstance(build_backend(config), LocalFileBackend)
    config.backend.kind = "http"
    config.backend.api_token = "secret"
    backend = build_backend(config)
    assert isinstance(backend, HttpReconciliationBackend)
    assert backend.session.headers["Authorization"] == "Bearer secret"
