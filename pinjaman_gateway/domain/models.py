"""Domain models - pure Python dataclasses representing business entities

All entities are frozen: the reducer derives new values with
``dataclasses.replace`` instead of mutating. Collections are tuples for the
same reason. Monetary amounts are whole Rupiah (int).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

SCHEMA_VERSION = 4

DEFAULT_MONTH = "Maret 2026"
DEFAULT_AVAILABLE_MONTHS = ("Maret 2026", "April 2026", "Mei 2026")

MANUAL_ADJUSTMENT_NOTE = "Penyesuaian Manual (Edit)"

# Percent; whole numbers in practice, fractional rates from old blobs are kept
Rate = Union[int, float]


class LoanCategory(str, Enum):
    """Lending cycle a loan belongs to"""

    GAJI = "Gaji"
    REMON = "Remon"


class LoanStatus(str, Enum):
    """Repayment status of a loan aggregate"""

    BELUM_LUNAS = "Belum Lunas"  # unpaid
    CICIL = "Cicil"  # partially paid
    LUNAS = "Lunas"  # paid off


def derive_status(paid_amount: int, total_due: int) -> LoanStatus:
    """Lunas iff paid >= due, Cicil iff 0 < paid < due, otherwise Belum Lunas"""
    if paid_amount >= total_due:
        return LoanStatus.LUNAS
    if paid_amount > 0:
        return LoanStatus.CICIL
    return LoanStatus.BELUM_LUNAS


@dataclass(frozen=True)
class Borrower:
    """Person receiving loans; credit_limit is a soft cap used for warnings only"""

    id: str
    name: str
    credit_limit: int


@dataclass(frozen=True)
class LoanEntry:
    """One disbursement merged into a transaction"""

    id: str
    borrower_id: str
    category: LoanCategory
    principal: int
    interest_rate: Rate
    total_due_contribution: int
    date: datetime


@dataclass(frozen=True)
class Installment:
    """One payment recorded against a transaction"""

    id: str
    amount: int
    date: datetime
    note: Optional[str] = None


@dataclass(frozen=True)
class LoanTransaction:
    """A borrower's running balance in one category/period"""

    id: str
    borrower_id: str
    borrower_name: str
    category: LoanCategory
    total_principal: int
    total_due: int
    paid_amount: int
    status: LoanStatus
    entries: tuple[LoanEntry, ...]
    installments: tuple[Installment, ...]
    due_month: str
    created_at: datetime
    updated_at: datetime
    is_arrear: bool = False
    is_priority: bool = False

    @property
    def is_active(self) -> bool:
        return self.status != LoanStatus.LUNAS

    @property
    def outstanding(self) -> int:
        return self.total_due - self.paid_amount


@dataclass(frozen=True)
class AppConfig:
    """Process-wide settings for the lending cycles"""

    active_cycle: LoanCategory = LoanCategory.GAJI

    active_month_gaji: str = DEFAULT_MONTH
    interest_rate_gaji: Rate = 20

    active_month_remon: str = DEFAULT_MONTH
    interest_rate_remon: Rate = 10

    # Google Sheets sync
    google_script_url: Optional[str] = None
    enable_auto_sync: bool = False

    version: int = SCHEMA_VERSION
    available_months: tuple[str, ...] = DEFAULT_AVAILABLE_MONTHS

    def active_month_for(self, category: LoanCategory) -> str:
        if category == LoanCategory.GAJI:
            return self.active_month_gaji
        return self.active_month_remon

    def interest_rate_for(self, category: LoanCategory) -> Rate:
        if category == LoanCategory.GAJI:
            return self.interest_rate_gaji
        return self.interest_rate_remon


@dataclass(frozen=True)
class AppState:
    """Whole application state; the unit of persistence"""

    borrowers: tuple[Borrower, ...] = ()
    transactions: tuple[LoanTransaction, ...] = ()
    config: AppConfig = field(default_factory=AppConfig)

    def find_borrower(self, borrower_id: str) -> Optional[Borrower]:
        return next((b for b in self.borrowers if b.id == borrower_id), None)

    def find_transaction(self, transaction_id: str) -> Optional[LoanTransaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)


@dataclass(frozen=True)
class FinancialSummary:
    """Aggregates over a set of transactions"""

    total_principal: int = 0
    total_receivable: int = 0
    projected_profit: int = 0
    total_paid: int = 0
    outstanding: int = 0


@dataclass(frozen=True)
class LimitCheck:
    """Preview of a new loan against the borrower's soft credit limit"""

    borrower: Borrower
    current_principal_debt: int
    new_principal: int
    projected_total_principal: int
    is_over_limit: bool
    remaining_limit: int
    current_due_on_month: int
    new_loan_due: int
    total_payment_due: int
