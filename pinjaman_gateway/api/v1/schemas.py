"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime, time, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from pinjaman_gateway.domain import actions
from pinjaman_gateway.domain.migration import load_snapshot
from pinjaman_gateway.domain.models import (
    AppState,
    Borrower,
    LoanCategory,
    LoanEntry,
    LoanStatus,
    LoanTransaction,
)
from pinjaman_gateway.utils.date_utils import month_label_for, utcnow
from pinjaman_gateway.utils.id_utils import generate_id


class BorrowerSchema(BaseModel):
    """Borrower payload; id is generated when omitted"""

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    credit_limit: int = Field(..., ge=0)


# --- Actions -----------------------------------------------------------------


class AddBorrowerRequest(BaseModel):
    type: Literal["ADD_BORROWER"]
    borrower: BorrowerSchema

    def to_action(self, state: AppState) -> actions.Action:
        return actions.AddBorrower(
            Borrower(
                id=self.borrower.id or generate_id(),
                name=self.borrower.name,
                credit_limit=self.borrower.credit_limit,
            )
        )


class DeleteBorrowerRequest(BaseModel):
    type: Literal["DELETE_BORROWER"]
    borrower_id: str

    def to_action(self, state: AppState) -> actions.Action:
        return actions.DeleteBorrower(self.borrower_id)


class UpdateBorrowerRequest(BaseModel):
    type: Literal["UPDATE_BORROWER"]
    borrower_id: str
    name: str = Field(..., min_length=1)
    credit_limit: int = Field(..., ge=0)

    def to_action(self, state: AppState) -> actions.Action:
        return actions.UpdateBorrower(self.borrower_id, self.name, self.credit_limit)


class AddLoanRequest(BaseModel):
    type: Literal["ADD_LOAN"]
    borrower_id: str
    principal: int = Field(..., gt=0, description="Principal in Rupiah")
    category: LoanCategory
    interest_rate: Optional[Union[int, float]] = Field(None, ge=0, description="Percent; defaults to the category rate")
    is_priority: Optional[bool] = None

    def to_action(self, state: AppState) -> actions.Action:
        rate = self.interest_rate
        if rate is None:
            rate = state.config.interest_rate_for(self.category)
        return actions.AddLoan(
            borrower_id=self.borrower_id,
            principal=self.principal,
            interest_rate=rate,
            category=self.category,
            is_priority=self.is_priority,
        )


class MakePaymentRequest(BaseModel):
    type: Literal["MAKE_PAYMENT"]
    transaction_id: str
    amount: int = Field(..., gt=0)
    date: Optional[datetime] = None
    note: Optional[str] = None

    def to_action(self, state: AppState) -> actions.Action:
        return actions.MakePayment(
            transaction_id=self.transaction_id,
            amount=self.amount,
            date=self.date or utcnow(),
            note=self.note,
        )


class DeletePaymentRequest(BaseModel):
    type: Literal["DELETE_PAYMENT"]
    transaction_id: str
    installment_id: str

    def to_action(self, state: AppState) -> actions.Action:
        return actions.DeletePayment(self.transaction_id, self.installment_id)


class UpdateTransactionRequest(BaseModel):
    type: Literal["UPDATE_TRANSACTION"]
    transaction_id: str
    total_principal: int = Field(..., ge=0)
    total_due: int = Field(..., ge=0)
    is_priority: Optional[bool] = None
    paid_amount: Optional[int] = Field(None, ge=0)

    def to_action(self, state: AppState) -> actions.Action:
        return actions.UpdateTransaction(
            transaction_id=self.transaction_id,
            total_principal=self.total_principal,
            total_due=self.total_due,
            is_priority=self.is_priority,
            paid_amount=self.paid_amount,
        )


class UpdateArrearRequest(BaseModel):
    type: Literal["UPDATE_ARREAR"]
    transaction_id: str
    total_principal: int = Field(..., ge=0)
    total_due: int = Field(..., ge=0)
    created_at: datetime
    due_month: str = Field(..., min_length=1)
    is_priority: Optional[bool] = None
    paid_amount: Optional[int] = Field(None, ge=0)

    def to_action(self, state: AppState) -> actions.Action:
        return actions.UpdateArrear(
            transaction_id=self.transaction_id,
            total_principal=self.total_principal,
            total_due=self.total_due,
            created_at=self.created_at,
            due_month=self.due_month,
            is_priority=self.is_priority,
            paid_amount=self.paid_amount,
        )


class MoveLoanCategoryRequest(BaseModel):
    type: Literal["MOVE_LOAN_CATEGORY"]
    transaction_id: str
    new_category: LoanCategory

    def to_action(self, state: AppState) -> actions.Action:
        return actions.MoveLoanCategory(self.transaction_id, self.new_category)


class AddArrearManualRequest(BaseModel):
    """Manually entered legacy debt; the period label follows start_date"""

    type: Literal["ADD_ARREAR_MANUAL"]
    borrower_id: str
    principal: int = Field(..., gt=0)
    total_due: int = Field(..., gt=0)
    start_date: date
    category: Optional[LoanCategory] = None
    due_month: Optional[str] = None
    is_priority: bool = False

    def to_action(self, state: AppState) -> actions.Action:
        category = self.category or state.config.active_cycle
        borrower = state.find_borrower(self.borrower_id)
        started = datetime.combine(self.start_date, time.min, tzinfo=timezone.utc)
        transaction = LoanTransaction(
            id=generate_id(),
            borrower_id=self.borrower_id,
            borrower_name=borrower.name if borrower else "",
            category=category,
            total_principal=self.principal,
            total_due=self.total_due,
            paid_amount=0,
            status=LoanStatus.BELUM_LUNAS,
            entries=(
                LoanEntry(
                    id=generate_id(),
                    borrower_id=self.borrower_id,
                    category=category,
                    principal=self.principal,
                    interest_rate=0,
                    total_due_contribution=self.total_due,
                    date=started,
                ),
            ),
            installments=(),
            due_month=self.due_month or month_label_for(self.start_date),
            created_at=started,
            updated_at=utcnow(),
            is_arrear=True,
            is_priority=self.is_priority,
        )
        return actions.AddArrearManual(transaction)


class DeleteTransactionRequest(BaseModel):
    type: Literal["DELETE_TRANSACTION"]
    transaction_id: str

    def to_action(self, state: AppState) -> actions.Action:
        return actions.DeleteTransaction(self.transaction_id)


class DeleteTransactionsBatchRequest(BaseModel):
    type: Literal["DELETE_TRANSACTIONS_BATCH"]
    transaction_ids: List[str]

    def to_action(self, state: AppState) -> actions.Action:
        return actions.DeleteTransactionsBatch(tuple(self.transaction_ids))


class ConfigPatch(BaseModel):
    """Partial AppConfig; only fields that are set get merged"""

    model_config = ConfigDict(extra="forbid")

    active_cycle: Optional[LoanCategory] = None
    active_month_gaji: Optional[str] = None
    interest_rate_gaji: Optional[Union[int, float]] = Field(None, ge=0)
    active_month_remon: Optional[str] = None
    interest_rate_remon: Optional[Union[int, float]] = Field(None, ge=0)
    google_script_url: Optional[str] = None
    enable_auto_sync: Optional[bool] = None
    available_months: Optional[List[str]] = None


class UpdateConfigRequest(BaseModel):
    type: Literal["UPDATE_CONFIG"]
    changes: ConfigPatch

    def to_action(self, state: AppState) -> actions.Action:
        # null means "leave unchanged", except for the script URL where it clears it
        changes = self.changes.model_dump(exclude_unset=True, exclude_none=True)
        if "google_script_url" in self.changes.model_fields_set and self.changes.google_script_url is None:
            changes["google_script_url"] = None
        return actions.UpdateConfig(changes)


class LoadStateRequest(BaseModel):
    """Restore a full snapshot (persisted blob shape); migrated before use"""

    type: Literal["LOAD_STATE"]
    state: Dict[str, Any]

    def to_action(self, state: AppState) -> actions.Action:
        return actions.LoadState(load_snapshot(self.state))


ActionRequest = Annotated[
    Union[
        AddBorrowerRequest,
        DeleteBorrowerRequest,
        UpdateBorrowerRequest,
        AddLoanRequest,
        MakePaymentRequest,
        DeletePaymentRequest,
        UpdateTransactionRequest,
        UpdateArrearRequest,
        MoveLoanCategoryRequest,
        AddArrearManualRequest,
        DeleteTransactionRequest,
        DeleteTransactionsBatchRequest,
        UpdateConfigRequest,
        LoadStateRequest,
    ],
    Field(discriminator="type"),
]


class ActionEnvelope(BaseModel):
    """Request body for POST /v1/actions"""

    action: ActionRequest


class ActionResponse(BaseModel):
    """Response for POST /v1/actions"""

    action_type: str
    applied: bool
    state: Dict[str, Any]


# --- Imports -----------------------------------------------------------------


class BorrowerRowSchema(BaseModel):
    name: str = Field(..., min_length=1)
    credit_limit: int = Field(..., ge=0)


class BorrowerImportRequest(BaseModel):
    """Request body for POST /v1/imports/borrowers"""

    rows: List[BorrowerRowSchema]


class ArrearRowSchema(BaseModel):
    name: str = Field(..., min_length=1)
    principal: int = Field(..., gt=0)
    due_month: str = Field(..., min_length=1)
    total_due: Optional[int] = Field(None, gt=0)
    paid: bool = False
    date: Optional[datetime] = None
    category: Optional[LoanCategory] = Field(None, description="Overrides the import category for this row")


class ArrearImportRequest(BaseModel):
    """Request body for POST /v1/imports/arrears"""

    category: LoanCategory
    rows: List[ArrearRowSchema]


class ImportResponse(BaseModel):
    """Response for the import endpoints"""

    applied: int
    ignored: int
    state: Dict[str, Any]


# --- Reports -----------------------------------------------------------------


class SummaryResponse(BaseModel):
    """Response for GET /v1/summary"""

    total_principal: int
    total_receivable: int
    projected_profit: int
    total_paid: int
    outstanding: int
    transaction_count: int


class LimitCheckResponse(BaseModel):
    """Response for GET /v1/borrowers/{borrower_id}/limit-check"""

    borrower_id: str
    credit_limit: int
    current_principal_debt: int
    new_principal: int
    projected_total_principal: int
    is_over_limit: bool
    remaining_limit: int
    current_due_on_month: int
    new_loan_due: int
    total_payment_due: int
