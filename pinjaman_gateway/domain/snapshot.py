"""Snapshot codec - AppState <-> JSON-compatible dict

The wire format keeps the camelCase keys stored by earlier clients
(``borrowerId``, ``totalPrincipal``, ``dueMonth`` ...) so existing blobs in the
local cache and the remote store keep loading.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pinjaman_gateway.domain.calculator import to_rupiah
from pinjaman_gateway.domain.exceptions import InvalidSnapshotError
from pinjaman_gateway.domain.models import (
    AppConfig,
    AppState,
    Borrower,
    Installment,
    LoanCategory,
    LoanEntry,
    LoanStatus,
    LoanTransaction,
    Rate,
    derive_status,
)


def _dt(value: datetime) -> str:
    return value.isoformat()


def _parse_dt(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_rate(value: Any) -> Rate:
    """Percent as stored; 20.0 -> 20, 12.5 stays 12.5"""
    rate = Decimal(str(value))
    if rate == rate.to_integral_value():
        return int(rate)
    return float(rate)


def borrower_to_dict(borrower: Borrower) -> Dict[str, Any]:
    return {"id": borrower.id, "name": borrower.name, "limit": borrower.credit_limit}


def entry_to_dict(entry: LoanEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "borrowerId": entry.borrower_id,
        "category": entry.category.value,
        "amount": entry.principal,
        "interestRate": entry.interest_rate,
        "totalDue": entry.total_due_contribution,
        "date": _dt(entry.date),
    }


def installment_to_dict(installment: Installment) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": installment.id,
        "amount": installment.amount,
        "date": _dt(installment.date),
    }
    if installment.note is not None:
        data["note"] = installment.note
    return data


def transaction_to_dict(txn: LoanTransaction) -> Dict[str, Any]:
    return {
        "id": txn.id,
        "borrowerId": txn.borrower_id,
        "borrowerName": txn.borrower_name,
        "category": txn.category.value,
        "totalPrincipal": txn.total_principal,
        "totalDue": txn.total_due,
        "paidAmount": txn.paid_amount,
        "status": txn.status.value,
        "entries": [entry_to_dict(e) for e in txn.entries],
        "installments": [installment_to_dict(i) for i in txn.installments],
        "dueMonth": txn.due_month,
        "createdAt": _dt(txn.created_at),
        "updatedAt": _dt(txn.updated_at),
        "isArrear": txn.is_arrear,
        "isPriority": txn.is_priority,
    }


def config_to_dict(config: AppConfig) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "activeCycle": config.active_cycle.value,
        "activeMonthGaji": config.active_month_gaji,
        "interestRateGaji": config.interest_rate_gaji,
        "activeMonthRemon": config.active_month_remon,
        "interestRateRemon": config.interest_rate_remon,
        "enableAutoSync": config.enable_auto_sync,
        "version": config.version,
        "availableMonths": list(config.available_months),
    }
    if config.google_script_url is not None:
        data["googleScriptUrl"] = config.google_script_url
    return data


def state_to_dict(state: AppState) -> Dict[str, Any]:
    """Serialize the whole state into the persisted blob shape"""
    return {
        "borrowers": [borrower_to_dict(b) for b in state.borrowers],
        "transactions": [transaction_to_dict(t) for t in state.transactions],
        "config": config_to_dict(state.config),
    }


def borrower_from_dict(data: Dict[str, Any]) -> Borrower:
    return Borrower(id=data["id"], name=data["name"], credit_limit=to_rupiah(data.get("limit", 0)))


def entry_from_dict(data: Dict[str, Any]) -> LoanEntry:
    return LoanEntry(
        id=data["id"],
        borrower_id=data["borrowerId"],
        category=LoanCategory(data["category"]),
        principal=to_rupiah(data["amount"]),
        interest_rate=_parse_rate(data.get("interestRate", 0)),
        total_due_contribution=to_rupiah(data["totalDue"]),
        date=_parse_dt(data["date"]),
    )


def installment_from_dict(data: Dict[str, Any]) -> Installment:
    return Installment(
        id=data["id"],
        amount=to_rupiah(data["amount"]),
        date=_parse_dt(data["date"]),
        note=data.get("note"),
    )


def transaction_from_dict(data: Dict[str, Any]) -> LoanTransaction:
    total_due = to_rupiah(data["totalDue"])
    paid_amount = to_rupiah(data.get("paidAmount", 0))
    raw_status: Optional[str] = data.get("status")
    created_at = _parse_dt(data["createdAt"])

    return LoanTransaction(
        id=data["id"],
        borrower_id=data["borrowerId"],
        borrower_name=data.get("borrowerName", ""),
        category=LoanCategory(data["category"]),
        total_principal=to_rupiah(data["totalPrincipal"]),
        total_due=total_due,
        paid_amount=paid_amount,
        status=LoanStatus(raw_status) if raw_status else derive_status(paid_amount, total_due),
        entries=tuple(entry_from_dict(e) for e in data.get("entries") or []),
        installments=tuple(installment_from_dict(i) for i in data.get("installments") or []),
        due_month=data.get("dueMonth") or "",
        created_at=created_at,
        updated_at=_parse_dt(data["updatedAt"]) if data.get("updatedAt") else created_at,
        is_arrear=bool(data.get("isArrear", False)),
        is_priority=bool(data.get("isPriority", False)),
    )


def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    defaults = AppConfig()
    return AppConfig(
        active_cycle=LoanCategory(data.get("activeCycle", defaults.active_cycle.value)),
        active_month_gaji=data.get("activeMonthGaji", defaults.active_month_gaji),
        interest_rate_gaji=_parse_rate(data.get("interestRateGaji", defaults.interest_rate_gaji)),
        active_month_remon=data.get("activeMonthRemon", defaults.active_month_remon),
        interest_rate_remon=_parse_rate(data.get("interestRateRemon", defaults.interest_rate_remon)),
        google_script_url=data.get("googleScriptUrl"),
        enable_auto_sync=bool(data.get("enableAutoSync", False)),
        version=int(data.get("version", defaults.version)),
        available_months=tuple(data.get("availableMonths", defaults.available_months)),
    )


def state_from_dict(data: Dict[str, Any]) -> AppState:
    """
    Parse a persisted blob into an AppState.

    Raises:
        InvalidSnapshotError: missing required keys or invalid values
    """
    try:
        return AppState(
            borrowers=tuple(borrower_from_dict(b) for b in data.get("borrowers") or []),
            transactions=tuple(transaction_from_dict(t) for t in data.get("transactions") or []),
            config=config_from_dict(data.get("config") or {}),
        )
    except (KeyError, ValueError, TypeError, AttributeError, ArithmeticError) as e:
        raise InvalidSnapshotError(f"Invalid state snapshot: {e!r}") from e
