"""Conversion between models and the camelCase JSON shapes used by the ERP API."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..models.transaction import (
    ZERO,
    BankTransaction,
    SystemTransaction,
    TransactionType,
    MatchRelation,
    Reconciliation,
    ReconciliationStatus,
    CompletionRequest,
)
from ..utils.exceptions import ValidationError


def _money(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


def _decimal(value: Any, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    if value is None or value == "":
        return default
    return Decimal(str(value))


def _date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # Accept both "2024-01-15" and full ISO timestamps
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def _datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _first(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def bank_transaction_to_dict(txn: BankTransaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "description": txn.description,
        "reference": txn.reference,
        "debit": _money(txn.debit),
        "credit": _money(txn.credit),
        "balance": _money(txn.running_balance),
        "matched": txn.matched,
        "matchedWith": txn.matched_with,
    }


def bank_transaction_from_dict(data: dict[str, Any]) -> BankTransaction:
    try:
        return BankTransaction(
            id=str(data["id"]),
            date=_date(_first(data, "date", "transactionDate")),
            description=data.get("description") or "",
            reference=data.get("reference") or "",
            debit=_decimal(data.get("debit")),
            credit=_decimal(data.get("credit")),
            running_balance=_decimal(
                _first(data, "balance", "runningBalance"), default=None
            ),
            raw_data=dict(data),
        )
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise ValidationError(f"Malformed bank transaction {data!r}: {e}") from e


def system_transaction_to_dict(txn: SystemTransaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "reference": txn.reference,
        "description": txn.description,
        "amount": _money(txn.amount),
        "type": txn.type.value,
        "matched": txn.matched,
    }


def system_transaction_from_dict(data: dict[str, Any]) -> SystemTransaction:
    try:
        return SystemTransaction(
            id=str(data["id"]),
            date=_date(data["date"]),
            amount=_decimal(data["amount"]),
            type=TransactionType(str(data["type"]).lower()),
            reference=data.get("reference") or "",
            description=data.get("description") or "",
            raw_data=dict(data),
        )
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise ValidationError(f"Malformed system transaction {data!r}: {e}") from e


def match_to_dict(relation: MatchRelation) -> dict[str, Any]:
    return {
        "bankTransactionId": relation.bank_transaction_id,
        "systemTransactionId": relation.system_transaction_id,
        "matchedAt": relation.matched_at.isoformat(),
    }


def completion_request_to_dict(request: CompletionRequest) -> dict[str, Any]:
    """Payload for the complete-reconciliation call."""
    return {
        "companyId": request.company_id,
        "accountId": request.account_id,
        "startDate": request.start_date.isoformat(),
        "endDate": request.end_date.isoformat(),
        "openingBalance": _money(request.opening_balance),
        "closingBalance": _money(request.closing_balance),
        "matchedCount": request.summary.matched_count,
        "unmatchedCount": request.summary.unmatched_count,
        "bankTransactions": [bank_transaction_to_dict(t) for t in request.bank_transactions],
        "systemTransactions": [
            system_transaction_to_dict(t) for t in request.system_transactions
        ],
        "matches": [match_to_dict(m) for m in request.matches],
    }


def reconciliation_to_dict(record: Reconciliation) -> dict[str, Any]:
    return {
        "id": record.id,
        "accountId": record.account_id,
        "accountName": record.account_name,
        "startDate": record.start_date.isoformat(),
        "endDate": record.end_date.isoformat(),
        "openingBalance": _money(record.opening_balance),
        "closingBalance": _money(record.closing_balance),
        "status": record.status.value,
        "matchedCount": record.matched_count,
        "unmatchedCount": record.unmatched_count,
        "createdAt": record.created_at.isoformat(),
    }


def reconciliation_from_dict(data: dict[str, Any]) -> Reconciliation:
    try:
        created_at = _first(data, "createdAt", "reconciliationDate")
        return Reconciliation(
            id=str(data["id"]),
            account_id=str(_first(data, "accountId", "bankAccountId")),
            account_name=data.get("accountName"),
            start_date=_date(data["startDate"]),
            end_date=_date(_first(data, "endDate", "statementDate")),
            opening_balance=_decimal(data.get("openingBalance")),
            closing_balance=_decimal(_first(data, "closingBalance", "statementBalance")),
            status=ReconciliationStatus(str(data.get("status", "completed")).lower()),
            matched_count=int(data.get("matchedCount", 0)),
            unmatched_count=int(data.get("unmatchedCount", 0)),
            created_at=_datetime(created_at) if created_at else datetime.now(),
        )
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise ValidationError(f"Malformed reconciliation record: {e}") from e
