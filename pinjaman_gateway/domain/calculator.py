"""Financial calculations - interest, summaries and the credit limit guard"""

from decimal import Decimal, ROUND_HALF_EVEN
from functools import reduce
from typing import Iterable, Union

from pinjaman_gateway.domain.exceptions import BorrowerNotFoundError
from pinjaman_gateway.domain.models import (
    AppState,
    FinancialSummary,
    LimitCheck,
    LoanCategory,
    LoanTransaction,
)

Number = Union[int, float, Decimal]


def to_rupiah(value: Number) -> int:
    """
    Quantize an amount to whole Rupiah using banker's rounding.

    Example:
        to_rupiah(2.5) -> 2, to_rupiah(3.5) -> 4
    """
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_EVEN))


def calculate_total_due(principal: int, interest_rate: Number) -> int:
    """
    Principal plus flat percentage interest.

    Example:
        calculate_total_due(500_000, 20) -> 600_000
    """
    base = Decimal(principal)
    rate = Decimal(str(interest_rate))
    return to_rupiah(base + base * rate / Decimal(100))


def _accumulate(acc: FinancialSummary, txn: LoanTransaction) -> FinancialSummary:
    return FinancialSummary(
        total_principal=acc.total_principal + txn.total_principal,
        total_receivable=acc.total_receivable + txn.total_due,
        projected_profit=acc.projected_profit + (txn.total_due - txn.total_principal),
        total_paid=acc.total_paid + txn.paid_amount,
        outstanding=acc.outstanding + (txn.total_due - txn.paid_amount),
    )


def summarize(transactions: Iterable[LoanTransaction]) -> FinancialSummary:
    """
    Fold a transaction set into principal, receivable, profit, paid and
    outstanding totals. Filtering is the caller's job; an empty input gives
    an all-zero summary.
    """
    return reduce(_accumulate, transactions, FinancialSummary())


def borrower_outstanding(transactions: Iterable[LoanTransaction], borrower_id: str) -> int:
    """Remaining amount owed across a borrower's active transactions"""
    return sum(
        t.total_due - t.paid_amount
        for t in transactions
        if t.borrower_id == borrower_id and t.is_active
    )


def check_limit(
    state: AppState,
    borrower_id: str,
    principal: int,
    category: LoanCategory,
) -> LimitCheck:
    """
    Preview a new loan against the borrower's soft credit limit.

    - Current debt is the principal of every active transaction (both
      categories, arrears included).
    - Over limit when current debt plus the new principal exceeds the limit.
      This is a warning; AddLoan never enforces it.
    - Payment preview covers the outstanding amount of the category's active
      month plus the new loan at the category's configured rate.

    Raises:
        BorrowerNotFoundError: borrower_id is unknown
    """
    borrower = state.find_borrower(borrower_id)
    if borrower is None:
        raise BorrowerNotFoundError(f"Borrower {borrower_id} not found")

    active = [t for t in state.transactions if t.borrower_id == borrower_id and t.is_active]
    current_principal_debt = sum(t.total_principal for t in active)

    active_month = state.config.active_month_for(category)
    current_due_on_month = sum(
        t.total_due - t.paid_amount
        for t in active
        if t.category == category and t.due_month == active_month
    )

    projected = current_principal_debt + principal
    new_loan_due = calculate_total_due(principal, state.config.interest_rate_for(category))

    return LimitCheck(
        borrower=borrower,
        current_principal_debt=current_principal_debt,
        new_principal=principal,
        projected_total_principal=projected,
        is_over_limit=projected > borrower.credit_limit,
        remaining_limit=borrower.credit_limit - current_principal_debt,
        current_due_on_month=current_due_on_month,
        new_loan_due=new_loan_due,
        total_payment_due=current_due_on_month + new_loan_due,
    )


def format_currency(amount: int) -> str:
    """Indonesian Rupiah display format, e.g. 1500000 -> "Rp 1.500.000" """
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", ".")
    return f"{sign}Rp {grouped}"
