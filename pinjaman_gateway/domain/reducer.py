"""State reducer - applies actions to the immutable AppState

Every transition is a pure function of (state, action). Handlers raise a
ReferenceNotFoundError when an action points at an unknown id; apply_action
turns that into a no-op result carrying the error, so callers that care can
tell "applied" from "ignored" while reduce_state keeps the never-raise
contract.
"""

from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pinjaman_gateway.domain.actions import (
    Action,
    AddArrearManual,
    AddBorrower,
    AddLoan,
    DeleteBorrower,
    DeletePayment,
    DeleteTransaction,
    DeleteTransactionsBatch,
    LoadState,
    MakePayment,
    MoveLoanCategory,
    UpdateArrear,
    UpdateBorrower,
    UpdateConfig,
    UpdateTransaction,
)
from pinjaman_gateway.domain.calculator import calculate_total_due
from pinjaman_gateway.domain.exceptions import (
    BorrowerNotFoundError,
    DomainException,
    InstallmentNotFoundError,
    InvalidConfigFieldError,
    TransactionNotFoundError,
)
from pinjaman_gateway.domain.models import (
    MANUAL_ADJUSTMENT_NOTE,
    AppConfig,
    AppState,
    Installment,
    LoanCategory,
    LoanEntry,
    LoanStatus,
    LoanTransaction,
    derive_status,
)
from pinjaman_gateway.utils.date_utils import utcnow
from pinjaman_gateway.utils.id_utils import generate_id

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one dispatched action"""

    state: AppState
    applied: bool
    error: Optional[DomainException] = None


@dataclass(frozen=True)
class _Context:
    clock: Clock
    new_id: IdFactory


def _update_transaction(
    state: AppState,
    transaction_id: str,
    update: Callable[[LoanTransaction], LoanTransaction],
) -> AppState:
    """Replace one transaction in place, keeping list order"""
    index = next((i for i, t in enumerate(state.transactions) if t.id == transaction_id), None)
    if index is None:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

    transactions = list(state.transactions)
    transactions[index] = update(transactions[index])
    return replace(state, transactions=tuple(transactions))


def _edited_payments(
    txn: LoanTransaction,
    paid_amount: Optional[int],
    ctx: _Context,
) -> tuple[int, tuple[Installment, ...]]:
    """
    Resolve paid amount and installment log for a direct edit.

    A changed paid amount discards the granular history: the log becomes
    empty (paid set to 0) or a single manual adjustment for the new total.
    """
    if paid_amount is None or paid_amount == txn.paid_amount:
        return txn.paid_amount, txn.installments

    if paid_amount == 0:
        return 0, ()

    adjustment = Installment(
        id=ctx.new_id(),
        amount=paid_amount,
        date=ctx.clock(),
        note=MANUAL_ADJUSTMENT_NOTE,
    )
    return paid_amount, (adjustment,)


def _add_borrower(state: AppState, action: AddBorrower, ctx: _Context) -> AppState:
    return replace(state, borrowers=state.borrowers + (action.borrower,))


def _delete_borrower(state: AppState, action: DeleteBorrower, ctx: _Context) -> AppState:
    # Transactions are left alone; orphaned borrower_id references are tolerated
    if state.find_borrower(action.borrower_id) is None:
        raise BorrowerNotFoundError(f"Borrower {action.borrower_id} not found")
    return replace(
        state,
        borrowers=tuple(b for b in state.borrowers if b.id != action.borrower_id),
    )


def _update_borrower(state: AppState, action: UpdateBorrower, ctx: _Context) -> AppState:
    if state.find_borrower(action.borrower_id) is None:
        raise BorrowerNotFoundError(f"Borrower {action.borrower_id} not found")

    borrowers = tuple(
        replace(b, name=action.name, credit_limit=action.credit_limit)
        if b.id == action.borrower_id
        else b
        for b in state.borrowers
    )
    # Denormalized name fans out in the same transition
    transactions = tuple(
        replace(t, borrower_name=action.name) if t.borrower_id == action.borrower_id else t
        for t in state.transactions
    )
    return replace(state, borrowers=borrowers, transactions=transactions)


def _add_loan(state: AppState, action: AddLoan, ctx: _Context) -> AppState:
    """
    Disburse a loan, merging into the borrower's active aggregate for the
    category when one exists. An active arrear of the same category counts
    as that aggregate and keeps its arrear flag.

    Merge rules:
    - entry appended, principal and interest-adjusted due added
    - due_month moves to the category's current active month
    - priority flag only changes when the action sets it
    """
    borrower = state.find_borrower(action.borrower_id)
    if borrower is None:
        raise BorrowerNotFoundError(f"Borrower {action.borrower_id} not found")

    now = ctx.clock()
    entry = LoanEntry(
        id=ctx.new_id(),
        borrower_id=action.borrower_id,
        category=action.category,
        principal=action.principal,
        interest_rate=action.interest_rate,
        total_due_contribution=calculate_total_due(action.principal, action.interest_rate),
        date=now,
    )
    active_month = state.config.active_month_for(action.category)

    existing = next(
        (
            t
            for t in state.transactions
            if t.borrower_id == action.borrower_id
            and t.category == action.category
            and t.is_active
        ),
        None,
    )

    if existing is not None:
        def merge(txn: LoanTransaction) -> LoanTransaction:
            total_due = txn.total_due + entry.total_due_contribution
            return replace(
                txn,
                entries=txn.entries + (entry,),
                total_principal=txn.total_principal + entry.principal,
                total_due=total_due,
                status=derive_status(txn.paid_amount, total_due),
                due_month=active_month,
                updated_at=now,
                is_priority=txn.is_priority if action.is_priority is None else action.is_priority,
            )

        return _update_transaction(state, existing.id, merge)

    created = LoanTransaction(
        id=ctx.new_id(),
        borrower_id=action.borrower_id,
        borrower_name=borrower.name,
        category=action.category,
        total_principal=entry.principal,
        total_due=entry.total_due_contribution,
        paid_amount=0,
        status=LoanStatus.BELUM_LUNAS,
        entries=(entry,),
        installments=(),
        due_month=active_month,
        created_at=now,
        updated_at=now,
        is_priority=bool(action.is_priority),
    )
    return replace(state, transactions=(created,) + state.transactions)


def _make_payment(state: AppState, action: MakePayment, ctx: _Context) -> AppState:
    # No upper bound: overpayment is kept and still resolves to Lunas
    def pay(txn: LoanTransaction) -> LoanTransaction:
        paid = txn.paid_amount + action.amount
        installment = Installment(
            id=ctx.new_id(),
            amount=action.amount,
            date=action.date,
            note=action.note,
        )
        return replace(
            txn,
            paid_amount=paid,
            status=derive_status(paid, txn.total_due),
            installments=txn.installments + (installment,),
            updated_at=ctx.clock(),
        )

    return _update_transaction(state, action.transaction_id, pay)


def _delete_payment(state: AppState, action: DeletePayment, ctx: _Context) -> AppState:
    def unpay(txn: LoanTransaction) -> LoanTransaction:
        installment = next((i for i in txn.installments if i.id == action.installment_id), None)
        if installment is None:
            raise InstallmentNotFoundError(
                f"Installment {action.installment_id} not found on transaction {txn.id}"
            )
        paid = txn.paid_amount - installment.amount
        return replace(
            txn,
            paid_amount=paid,
            status=derive_status(paid, txn.total_due),
            installments=tuple(i for i in txn.installments if i.id != action.installment_id),
            updated_at=ctx.clock(),
        )

    return _update_transaction(state, action.transaction_id, unpay)


def _update_transaction_fields(state: AppState, action: UpdateTransaction, ctx: _Context) -> AppState:
    def edit(txn: LoanTransaction) -> LoanTransaction:
        paid, installments = _edited_payments(txn, action.paid_amount, ctx)
        return replace(
            txn,
            total_principal=action.total_principal,
            total_due=action.total_due,
            paid_amount=paid,
            installments=installments,
            status=derive_status(paid, action.total_due),
            updated_at=ctx.clock(),
            is_priority=txn.is_priority if action.is_priority is None else action.is_priority,
        )

    return _update_transaction(state, action.transaction_id, edit)


def _update_arrear(state: AppState, action: UpdateArrear, ctx: _Context) -> AppState:
    def edit(txn: LoanTransaction) -> LoanTransaction:
        paid, installments = _edited_payments(txn, action.paid_amount, ctx)
        return replace(
            txn,
            total_principal=action.total_principal,
            total_due=action.total_due,
            created_at=action.created_at,
            due_month=action.due_month,
            paid_amount=paid,
            installments=installments,
            status=derive_status(paid, action.total_due),
            updated_at=ctx.clock(),
            is_priority=txn.is_priority if action.is_priority is None else action.is_priority,
        )

    return _update_transaction(state, action.transaction_id, edit)


def _move_loan_category(state: AppState, action: MoveLoanCategory, ctx: _Context) -> AppState:
    # Does not merge into an active aggregate already in the destination category
    active_month = state.config.active_month_for(action.new_category)
    return _update_transaction(
        state,
        action.transaction_id,
        lambda txn: replace(
            txn,
            category=action.new_category,
            due_month=active_month,
            updated_at=ctx.clock(),
        ),
    )


def _add_arrear_manual(state: AppState, action: AddArrearManual, ctx: _Context) -> AppState:
    incoming = action.transaction

    if incoming.is_arrear:
        existing = next(
            (
                t
                for t in state.transactions
                if t.is_arrear and t.borrower_id == incoming.borrower_id and t.is_active
            ),
            None,
        )
        if existing is not None:
            def merge(txn: LoanTransaction) -> LoanTransaction:
                total_due = txn.total_due + incoming.total_due
                return replace(
                    txn,
                    total_principal=txn.total_principal + incoming.total_principal,
                    total_due=total_due,
                    entries=txn.entries + incoming.entries,
                    status=derive_status(txn.paid_amount, total_due),
                    updated_at=ctx.clock(),
                )

            return _update_transaction(state, existing.id, merge)

    inserted = replace(incoming, status=derive_status(incoming.paid_amount, incoming.total_due))
    return replace(state, transactions=(inserted,) + state.transactions)


def _delete_transaction(state: AppState, action: DeleteTransaction, ctx: _Context) -> AppState:
    if state.find_transaction(action.transaction_id) is None:
        raise TransactionNotFoundError(f"Transaction {action.transaction_id} not found")
    return replace(
        state,
        transactions=tuple(t for t in state.transactions if t.id != action.transaction_id),
    )


def _delete_transactions_batch(state: AppState, action: DeleteTransactionsBatch, ctx: _Context) -> AppState:
    doomed = set(action.transaction_ids)
    return replace(state, transactions=tuple(t for t in state.transactions if t.id not in doomed))


_CONFIG_FIELDS = {f.name for f in fields(AppConfig)}

# google_script_url is the only field that may be cleared with None
_CONFIG_TYPES: Dict[str, Any] = {
    "active_month_gaji": str,
    "active_month_remon": str,
    "interest_rate_gaji": (int, float),
    "interest_rate_remon": (int, float),
    "google_script_url": (str, type(None)),
    "enable_auto_sync": bool,
    "version": int,
    "available_months": (list, tuple),
}


def _check_config_value(name: str, value: Any) -> None:
    expected = _CONFIG_TYPES.get(name)
    if expected is None:
        return
    # bool is an int subclass
    wrong_bool = isinstance(value, bool) and expected is not bool
    if wrong_bool or not isinstance(value, expected):
        raise InvalidConfigFieldError(f"Invalid value for {name}: {value!r}")
    if name == "available_months" and not all(isinstance(m, str) for m in value):
        raise InvalidConfigFieldError(f"Invalid value for {name}: {value!r}")


def _coerce_config_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(changes) - _CONFIG_FIELDS)
    if unknown:
        raise InvalidConfigFieldError(f"Unknown config fields: {', '.join(unknown)}")

    for name, value in changes.items():
        _check_config_value(name, value)

    coerced = dict(changes)
    if "active_cycle" in coerced:
        try:
            coerced["active_cycle"] = LoanCategory(coerced["active_cycle"])
        except ValueError as e:
            raise InvalidConfigFieldError(f"Invalid active_cycle: {coerced['active_cycle']}") from e
    if "available_months" in coerced:
        coerced["available_months"] = tuple(coerced["available_months"])
    return coerced


def _update_config(state: AppState, action: UpdateConfig, ctx: _Context) -> AppState:
    return replace(state, config=replace(state.config, **_coerce_config_changes(action.changes)))


def _load_state(state: AppState, action: LoadState, ctx: _Context) -> AppState:
    return action.state


_HANDLERS: Dict[type, Callable[[AppState, Any, _Context], AppState]] = {
    AddBorrower: _add_borrower,
    DeleteBorrower: _delete_borrower,
    UpdateBorrower: _update_borrower,
    AddLoan: _add_loan,
    MakePayment: _make_payment,
    DeletePayment: _delete_payment,
    UpdateTransaction: _update_transaction_fields,
    UpdateArrear: _update_arrear,
    MoveLoanCategory: _move_loan_category,
    AddArrearManual: _add_arrear_manual,
    DeleteTransaction: _delete_transaction,
    DeleteTransactionsBatch: _delete_transactions_batch,
    UpdateConfig: _update_config,
    LoadState: _load_state,
}


def apply_action(
    state: AppState,
    action: Action,
    *,
    clock: Clock = utcnow,
    new_id: IdFactory = generate_id,
) -> ActionResult:
    """
    Apply one action and report whether it took effect.

    Never raises for bad references: the input state comes back unchanged
    with the error attached.
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        return ActionResult(state=state, applied=False)

    try:
        new_state = handler(state, action, _Context(clock=clock, new_id=new_id))
    except DomainException as e:
        return ActionResult(state=state, applied=False, error=e)

    return ActionResult(state=new_state, applied=True)


def reduce_state(
    state: AppState,
    action: Action,
    *,
    clock: Clock = utcnow,
    new_id: IdFactory = generate_id,
) -> AppState:
    """(state, action) -> new state; unknown references leave state unchanged"""
    return apply_action(state, action, clock=clock, new_id=new_id).state
