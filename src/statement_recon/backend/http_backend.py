"""HTTP backend talking to the ERP reconciliation endpoints."""

from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote
import logging

import requests

from ..models.transaction import CompletionRequest, Reconciliation, StatementImport
from ..utils.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .base import ReconciliationBackend
from .serialization import (
    bank_transaction_from_dict,
    completion_request_to_dict,
    reconciliation_from_dict,
    system_transaction_from_dict,
)

logger = logging.getLogger(__name__)

STATUS_ERRORS = {
    400: ValidationError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


class HttpReconciliationBackend(ReconciliationBackend):
    """
    Backend for the ``/reconciliations`` REST endpoints.

    Company and credentials are passed in explicitly; nothing is read from
    ambient state.
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_token:
            self.session.headers["Authorization"] = f"Bearer {api_token}"

    def import_statement(
        self, company_id: str, account_id: str, file_path: Path
    ) -> StatementImport:
        with open(file_path, "rb") as f:
            data = self._request(
                "POST",
                "/reconciliations/import",
                files={"file": (file_path.name, f)},
                data={"accountId": account_id, "companyId": company_id},
            )

        return StatementImport(
            bank_transactions=[
                bank_transaction_from_dict(t) for t in data.get("bankTransactions") or []
            ],
            system_transactions=[
                system_transaction_from_dict(t) for t in data.get("systemTransactions") or []
            ],
        )

    def persist_match(
        self,
        company_id: str,
        bank_txn_id: str,
        system_txn_id: str,
        account_id: Optional[str] = None,
    ) -> None:
        # Transaction ids are unique server-side; the account is implied
        self._request(
            "POST",
            "/reconciliations/match",
            json={
                "bankTransactionId": bank_txn_id,
                "systemTransactionId": system_txn_id,
                "companyId": company_id,
            },
        )

    def persist_unmatch(
        self, company_id: str, bank_txn_id: str, account_id: Optional[str] = None
    ) -> None:
        self._request(
            "POST",
            "/reconciliations/unmatch",
            json={"bankTransactionId": bank_txn_id, "companyId": company_id},
        )

    def complete_reconciliation(self, request: CompletionRequest) -> Reconciliation:
        data = self._request(
            "POST", "/reconciliations/complete", json=completion_request_to_dict(request)
        )
        # The server has committed at this point; a bad body is not a bad request
        record = data.get("reconciliation", data) if isinstance(data, dict) else None
        try:
            return reconciliation_from_dict(record)
        except ValidationError as e:
            logger.error(f"Completion of {request.account_id} accepted without a record: {e}")
            raise PersistenceError(
                f"Server reported success completing the reconciliation for account "
                f"{request.account_id} but returned no reconciliation record; check the "
                f"history before retrying"
            ) from e

    def list_reconciliations(
        self, company_id: str, account_id: Optional[str] = None
    ) -> list[Reconciliation]:
        params = {"companyId": company_id}
        if account_id:
            params["accountId"] = account_id

        data = self._request("GET", "/reconciliations", params=params)
        return [reconciliation_from_dict(r) for r in data.get("reconciliations") or []]

    def get_reconciliation(self, company_id: str, reconciliation_id: str) -> Reconciliation:
        data = self._request(
            "GET",
            f"/reconciliations/{quote(reconciliation_id, safe='')}",
            params={"companyId": company_id},
        )
        return reconciliation_from_dict(data.get("reconciliation", data))

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """
        Send a request and decode the JSON body.

        Raises:
            ValidationError, NotFoundError, ConflictError: Mapped from 4xx codes
            PersistenceError: Transport failures and any other error status
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise PersistenceError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"{method} {url} returned {response.status_code}: {message}")
            error_cls = STATUS_ERRORS.get(response.status_code, PersistenceError)
            raise error_cls(message)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise PersistenceError(f"{method} {path} returned invalid JSON") from e


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"
