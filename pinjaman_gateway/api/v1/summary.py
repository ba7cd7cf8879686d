"""GET /v1/summary and /v1/borrowers/{borrower_id}/limit-check - read-only reports"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pinjaman_gateway.api.v1.schemas import LimitCheckResponse, SummaryResponse
from pinjaman_gateway.api.dependencies import get_config_id
from pinjaman_gateway.infrastructure.database.session import get_db
from pinjaman_gateway.infrastructure.database.repositories import StateRepository
from pinjaman_gateway.domain.calculator import check_limit, summarize
from pinjaman_gateway.domain.exceptions import BorrowerNotFoundError, InvalidSnapshotError
from pinjaman_gateway.domain.filters import SummaryView, filter_transactions
from pinjaman_gateway.domain.models import AppState, LoanCategory

router = APIRouter()


def _stored_state(db: Session, config_id: str) -> AppState:
    try:
        return StateRepository(db).load_app_state(config_id)
    except InvalidSnapshotError:
        raise HTTPException(status_code=500, detail="Stored state is invalid")


@router.get("/summary", response_model=SummaryResponse)
def get_summary(
    month: Optional[str] = Query(None, description="Exact period label, e.g. 'Maret 2026'"),
    year: Optional[str] = Query(None, description="Year contained in the period label"),
    view: SummaryView = Query(SummaryView.ALL),
    priority: bool = Query(False, description="Priority transactions only"),
    db: Session = Depends(get_db),
    config_id: str = Depends(get_config_id),
):
    """Financial summary over the filtered transaction set"""
    state = _stored_state(db, config_id)
    selected = filter_transactions(state.transactions, month=month, year=year, view=view, priority_only=priority)
    summary = summarize(selected)

    return SummaryResponse(
        total_principal=summary.total_principal,
        total_receivable=summary.total_receivable,
        projected_profit=summary.projected_profit,
        total_paid=summary.total_paid,
        outstanding=summary.outstanding,
        transaction_count=len(selected),
    )


@router.get("/borrowers/{borrower_id}/limit-check", response_model=LimitCheckResponse)
def get_limit_check(
    borrower_id: str,
    principal: int = Query(..., gt=0),
    category: LoanCategory = Query(...),
    db: Session = Depends(get_db),
    config_id: str = Depends(get_config_id),
):
    """
    Preview a new loan against the borrower's credit limit.

    Over-limit is a warning only; the loan can still be added.
    """
    state = _stored_state(db, config_id)
    try:
        check = check_limit(state, borrower_id, principal, category)
    except BorrowerNotFoundError:
        raise HTTPException(status_code=404, detail="Borrower not found")

    return LimitCheckResponse(
        borrower_id=check.borrower.id,
        credit_limit=check.borrower.credit_limit,
        current_principal_debt=check.current_principal_debt,
        new_principal=check.new_principal,
        projected_total_principal=check.projected_total_principal,
        is_over_limit=check.is_over_limit,
        remaining_limit=check.remaining_limit,
        current_due_on_month=check.current_due_on_month,
        new_loan_due=check.new_loan_due,
        total_payment_due=check.total_payment_due,
    )
