"""Import translation - parsed rows become ordinary reducer actions"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from pinjaman_gateway.domain.actions import Action, AddArrearManual, AddBorrower, UpdateConfig
from pinjaman_gateway.domain.models import (
    AppState,
    Borrower,
    LoanCategory,
    LoanEntry,
    LoanTransaction,
    derive_status,
)
from pinjaman_gateway.utils.date_utils import sort_month_labels, utcnow
from pinjaman_gateway.utils.id_utils import generate_id

DEFAULT_BORROWER_LIMIT = 3_000_000


@dataclass(frozen=True)
class BorrowerRow:
    name: str
    credit_limit: int


@dataclass(frozen=True)
class ArrearRow:
    """One legacy debt line; paid rows are kept as settled history"""

    name: str
    principal: int
    due_month: str
    total_due: Optional[int] = None  # defaults to principal
    paid: bool = False
    date: Optional[datetime] = None
    category: Optional[LoanCategory] = None  # falls back to the import category


def plan_borrower_import(rows: Iterable[BorrowerRow], new_id=generate_id) -> List[AddBorrower]:
    return [AddBorrower(Borrower(id=new_id(), name=row.name, credit_limit=row.credit_limit)) for row in rows]


def plan_arrear_import(
    state: AppState,
    rows: Iterable[ArrearRow],
    category: LoanCategory,
    default_limit: int = DEFAULT_BORROWER_LIMIT,
    clock=utcnow,
    new_id=generate_id,
) -> List[Action]:
    """
    Translate arrear rows into actions.

    Borrowers are matched by case-insensitive name and created with
    default_limit when missing. A row category, when given, replaces the
    import-wide category for that row. Unpaid rows become arrears (merged by the
    reducer into the borrower's active arrear); paid rows are inserted as
    settled, non-arrear history. Period labels not yet known are appended to
    available_months with a single UpdateConfig at the end.
    """
    known = {b.name.lower(): b.id for b in state.borrowers}
    actions: List[Action] = []
    months: List[str] = []

    for row in rows:
        key = row.name.lower()
        borrower_id = known.get(key)
        if borrower_id is None:
            borrower_id = new_id()
            known[key] = borrower_id
            actions.append(AddBorrower(Borrower(id=borrower_id, name=row.name, credit_limit=default_limit)))

        total_due = row.principal if row.total_due is None else row.total_due
        paid_amount = total_due if row.paid else 0
        disbursed_at = row.date or clock()
        row_category = row.category or category

        entry = LoanEntry(
            id=new_id(),
            borrower_id=borrower_id,
            category=row_category,
            principal=row.principal,
            interest_rate=0,
            total_due_contribution=total_due,
            date=disbursed_at,
        )
        actions.append(
            AddArrearManual(
                LoanTransaction(
                    id=new_id(),
                    borrower_id=borrower_id,
                    borrower_name=row.name,
                    category=row_category,
                    total_principal=row.principal,
                    total_due=total_due,
                    paid_amount=paid_amount,
                    status=derive_status(paid_amount, total_due),
                    entries=(entry,),
                    installments=(),
                    due_month=row.due_month,
                    created_at=disbursed_at,
                    updated_at=clock(),
                    is_arrear=not row.paid,
                )
            )
        )
        months.append(row.due_month)

    known_months = set(state.config.available_months)
    new_months = [m for m in dict.fromkeys(months) if m not in known_months]
    if new_months:
        merged = sort_month_labels(list(state.config.available_months) + new_months)
        actions.append(UpdateConfig({"available_months": tuple(merged)}))

    return actions
