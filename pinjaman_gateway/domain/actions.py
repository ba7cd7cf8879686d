"""Reducer actions - one frozen dataclass per state transition"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Union

from pinjaman_gateway.domain.models import AppState, Borrower, LoanCategory, LoanTransaction, Rate


@dataclass(frozen=True)
class AddBorrower:
    action_type: ClassVar[str] = "ADD_BORROWER"

    borrower: Borrower


@dataclass(frozen=True)
class DeleteBorrower:
    action_type: ClassVar[str] = "DELETE_BORROWER"

    borrower_id: str


@dataclass(frozen=True)
class UpdateBorrower:
    action_type: ClassVar[str] = "UPDATE_BORROWER"

    borrower_id: str
    name: str
    credit_limit: int


@dataclass(frozen=True)
class AddLoan:
    action_type: ClassVar[str] = "ADD_LOAN"

    borrower_id: str
    principal: int
    interest_rate: Rate
    category: LoanCategory
    is_priority: Optional[bool] = None  # None keeps the existing flag on merge


@dataclass(frozen=True)
class MakePayment:
    action_type: ClassVar[str] = "MAKE_PAYMENT"

    transaction_id: str
    amount: int
    date: datetime
    note: Optional[str] = None


@dataclass(frozen=True)
class DeletePayment:
    action_type: ClassVar[str] = "DELETE_PAYMENT"

    transaction_id: str
    installment_id: str


@dataclass(frozen=True)
class UpdateTransaction:
    action_type: ClassVar[str] = "UPDATE_TRANSACTION"

    transaction_id: str
    total_principal: int
    total_due: int
    is_priority: Optional[bool] = None
    paid_amount: Optional[int] = None


@dataclass(frozen=True)
class UpdateArrear:
    action_type: ClassVar[str] = "UPDATE_ARREAR"

    transaction_id: str
    total_principal: int
    total_due: int
    created_at: datetime
    due_month: str
    is_priority: Optional[bool] = None
    paid_amount: Optional[int] = None


@dataclass(frozen=True)
class MoveLoanCategory:
    action_type: ClassVar[str] = "MOVE_LOAN_CATEGORY"

    transaction_id: str
    new_category: LoanCategory


@dataclass(frozen=True)
class AddArrearManual:
    action_type: ClassVar[str] = "ADD_ARREAR_MANUAL"

    transaction: LoanTransaction


@dataclass(frozen=True)
class DeleteTransaction:
    action_type: ClassVar[str] = "DELETE_TRANSACTION"

    transaction_id: str


@dataclass(frozen=True)
class DeleteTransactionsBatch:
    action_type: ClassVar[str] = "DELETE_TRANSACTIONS_BATCH"

    transaction_ids: tuple[str, ...]


@dataclass(frozen=True)
class UpdateConfig:
    action_type: ClassVar[str] = "UPDATE_CONFIG"

    changes: Dict[str, Any]


@dataclass(frozen=True)
class LoadState:
    action_type: ClassVar[str] = "LOAD_STATE"

    state: AppState


Action = Union[
    AddBorrower,
    DeleteBorrower,
    UpdateBorrower,
    AddLoan,
    MakePayment,
    DeletePayment,
    UpdateTransaction,
    UpdateArrear,
    MoveLoanCategory,
    AddArrearManual,
    DeleteTransaction,
    DeleteTransactionsBatch,
    UpdateConfig,
    LoadState,
]
