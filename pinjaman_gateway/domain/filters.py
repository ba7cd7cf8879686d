"""Transaction selection helpers used before summarizing"""

from collections import Counter
from enum import Enum
from typing import Iterable, List, Optional

from pinjaman_gateway.domain.models import AppState, LoanCategory, LoanTransaction


class SummaryView(str, Enum):
    """Dashboard views; ARREARS shows manual legacy debt only"""

    ALL = "All"
    GAJI = "Gaji"
    REMON = "Remon"
    ARREARS = "Tunggakan"


def filter_transactions(
    transactions: Iterable[LoanTransaction],
    month: Optional[str] = None,
    year: Optional[str] = None,
    view: SummaryView = SummaryView.ALL,
    priority_only: bool = False,
) -> List[LoanTransaction]:
    """
    Select transactions for a summary.

    - month: exact due_month match
    - year: substring of due_month
    - ARREARS view keeps arrears only; every other view drops them and
      GAJI/REMON restrict the category
    """
    selected = []
    for txn in transactions:
        if month and txn.due_month != month:
            continue
        if year and year not in txn.due_month:
            continue
        if priority_only and not txn.is_priority:
            continue

        if view == SummaryView.ARREARS:
            if txn.is_arrear:
                selected.append(txn)
            continue

        if txn.is_arrear:
            continue
        if view != SummaryView.ALL and txn.category != LoanCategory(view.value):
            continue
        selected.append(txn)

    return selected


def active_transactions_for(transactions: Iterable[LoanTransaction], borrower_id: str) -> List[LoanTransaction]:
    return [t for t in transactions if t.borrower_id == borrower_id and t.is_active]


def find_duplicate_active_loans(state: AppState) -> List[tuple[str, LoanCategory]]:
    """
    (borrower_id, category) pairs holding more than one active aggregate,
    arrears included. AddLoan never produces these; MoveLoanCategory and a
    manual arrear next to a running loan can.
    """
    counts = Counter((t.borrower_id, t.category) for t in state.transactions if t.is_active)
    return [pair for pair, count in counts.items() if count > 1]
