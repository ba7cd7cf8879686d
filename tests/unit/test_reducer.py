"""Unit tests for the state reducer"""

import random
import pytest
from dataclasses import replace
from datetime import datetime, timezone
from pinjaman_gateway.domain.actions import (
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
from pinjaman_gateway.domain.exceptions import (
    BorrowerNotFoundError,
    InstallmentNotFoundError,
    InvalidConfigFieldError,
    TransactionNotFoundError,
)
from pinjaman_gateway.domain.filters import find_duplicate_active_loans
from pinjaman_gateway.domain.models import (
    MANUAL_ADJUSTMENT_NOTE,
    AppConfig,
    AppState,
    Borrower,
    LoanCategory,
    LoanStatus,
    derive_status,
)
from pinjaman_gateway.domain.reducer import apply_action, reduce_state
from pinjaman_gateway.domain.snapshot import state_to_dict

PAY_DATE = datetime(2026, 3, 25, tzinfo=timezone.utc)


def gaji_loan(principal: int, borrower_id: str = "b-1", **kwargs) -> AddLoan:
    return AddLoan(borrower_id=borrower_id, principal=principal, interest_rate=20, category=LoanCategory.GAJI, **kwargs)


def assert_status_consistent(state: AppState) -> None:
    for txn in state.transactions:
        assert txn.status == derive_status(txn.paid_amount, txn.total_due)
        assert txn.paid_amount == sum(i.amount for i in txn.installments)


# --- Borrowers -----------------------------------------------------------------


def test_add_borrower_appends(reduce, state_with_borrower):
    other = Borrower(id="b-2", name="Sari", credit_limit=2_000_000)
    state = reduce(state_with_borrower, AddBorrower(other))
    assert [b.id for b in state.borrowers] == ["b-1", "b-2"]


def test_delete_borrower_keeps_transactions(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    state = reduce(state, DeleteBorrower("b-1"))

    assert state.borrowers == ()
    assert len(state.transactions) == 1
    assert state.transactions[0].borrower_id == "b-1"


def test_update_borrower_renames_transactions(reduce, state_with_borrower):
    state = reduce(state_with_borrower, AddBorrower(Borrower(id="b-2", name="Sari", credit_limit=500_000)))
    state = reduce(state, gaji_loan(500_000))
    state = reduce(state, gaji_loan(200_000, borrower_id="b-2"))

    state = reduce(state, UpdateBorrower("b-1", name="Budi Santoso", credit_limit=2_000_000))

    assert state.find_borrower("b-1").name == "Budi Santoso"
    assert state.find_borrower("b-1").credit_limit == 2_000_000
    names = {t.borrower_id: t.borrower_name for t in state.transactions}
    assert names == {"b-1": "Budi Santoso", "b-2": "Sari"}


@pytest.mark.parametrize(
    "action",
    [DeleteBorrower("missing"), UpdateBorrower("missing", name="X", credit_limit=1)],
)
def test_unknown_borrower_is_ignored(state_with_borrower, action):
    result = apply_action(state_with_borrower, action)

    assert result.applied is False
    assert result.state is state_with_borrower
    assert isinstance(result.error, BorrowerNotFoundError)


# --- AddLoan -------------------------------------------------------------------


def test_add_loan_creates_transaction(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))

    assert len(state.transactions) == 1
    txn = state.transactions[0]
    assert txn.total_principal == 500_000
    assert txn.total_due == 600_000
    assert txn.paid_amount == 0
    assert txn.status == LoanStatus.BELUM_LUNAS
    assert txn.due_month == "Maret 2026"
    assert txn.borrower_name == "Budi"
    assert len(txn.entries) == 1
    assert txn.entries[0].total_due_contribution == 600_000
    assert txn.is_priority is False


def test_add_loan_merges_into_active_transaction(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    state = reduce(state, gaji_loan(300_000))

    assert len(state.transactions) == 1
    txn = state.transactions[0]
    assert txn.total_principal == 800_000
    assert txn.total_due == 960_000
    assert txn.status == LoanStatus.BELUM_LUNAS
    assert [e.principal for e in txn.entries] == [500_000, 300_000]


def test_add_loan_merge_keeps_aggregate_totals(reduce, state_with_borrower):
    state = state_with_borrower
    for principal in (100_000, 250_000, 75_000, 10_000):
        state = reduce(state, gaji_loan(principal))

    active = [t for t in state.transactions if t.is_active and t.category == LoanCategory.GAJI]
    assert len(active) == 1
    assert active[0].total_principal == sum(e.principal for e in active[0].entries)
    assert active[0].total_due == sum(e.total_due_contribution for e in active[0].entries)


def test_add_loan_merge_after_partial_payment_is_cicil(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    txn_id = state.transactions[0].id
    state = reduce(state, MakePayment(txn_id, 100_000, PAY_DATE))
    state = reduce(state, gaji_loan(300_000))

    txn = state.find_transaction(txn_id)
    assert txn.paid_amount == 100_000
    assert txn.status == LoanStatus.CICIL


def test_add_loan_merge_moves_due_month_to_active_month(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    state = reduce(state, UpdateConfig({"active_month_gaji": "April 2026"}))
    state = reduce(state, gaji_loan(100_000))

    assert state.transactions[0].due_month == "April 2026"


def test_add_loan_merge_priority_flag(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000, is_priority=True))
    state = reduce(state, gaji_loan(100_000))
    assert state.transactions[0].is_priority is True

    state = reduce(state, gaji_loan(100_000, is_priority=False))
    assert state.transactions[0].is_priority is False


def test_add_loan_other_category_is_separate(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    state = reduce(
        state,
        AddLoan(borrower_id="b-1", principal=200_000, interest_rate=10, category=LoanCategory.REMON),
    )

    assert len(state.transactions) == 2
    remon = state.transactions[0]
    assert remon.category == LoanCategory.REMON
    assert remon.total_due == 220_000


def test_add_loan_after_settlement_starts_new_transaction(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    settled_id = state.transactions[0].id
    state = reduce(state, MakePayment(settled_id, 600_000, PAY_DATE))
    state = reduce(state, gaji_loan(100_000))

    assert len(state.transactions) == 2
    assert state.transactions[0].id != settled_id
    assert state.find_transaction(settled_id).status == LoanStatus.LUNAS


def test_add_loan_merges_into_active_arrear(reduce, state_with_borrower, make_transaction):
    arrear = make_transaction(id="arr-1", is_arrear=True, total_principal=400_000, total_due=400_000)
    state = reduce(state_with_borrower, AddArrearManual(arrear))
    state = reduce(state, gaji_loan(100_000))

    assert len(state.transactions) == 1
    merged = state.find_transaction("arr-1")
    assert merged.is_arrear is True
    assert merged.total_principal == 500_000
    assert merged.total_due == 520_000
    assert len(merged.entries) == 2


def test_add_loan_unknown_borrower_is_ignored(state_with_borrower):
    result = apply_action(state_with_borrower, gaji_loan(100_000, borrower_id="missing"))

    assert result.applied is False
    assert result.state is state_with_borrower
    assert isinstance(result.error, BorrowerNotFoundError)


# --- Payments ------------------------------------------------------------------


def test_make_payment_settles_loan(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    state = reduce(state, gaji_loan(300_000))
    txn_id = state.transactions[0].id

    state = reduce(state, MakePayment(txn_id, 960_000, PAY_DATE, note="Transfer"))

    txn = state.find_transaction(txn_id)
    assert txn.paid_amount == 960_000
    assert txn.status == LoanStatus.LUNAS
    assert len(txn.installments) == 1
    assert txn.installments[0].date == PAY_DATE
    assert txn.installments[0].note == "Transfer"


def test_make_payment_partial_and_overpayment(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    txn_id = state.transactions[0].id

    state = reduce(state, MakePayment(txn_id, 200_000, PAY_DATE))
    assert state.find_transaction(txn_id).status == LoanStatus.CICIL

    state = reduce(state, MakePayment(txn_id, 450_000, PAY_DATE))
    txn = state.find_transaction(txn_id)
    assert txn.paid_amount == 650_000
    assert txn.status == LoanStatus.LUNAS


def test_make_payment_unknown_transaction_is_ignored(state_with_borrower):
    result = apply_action(state_with_borrower, MakePayment("missing", 100, PAY_DATE))

    assert result.applied is False
    assert result.state is state_with_borrower
    assert isinstance(result.error, TransactionNotFoundError)


def test_delete_payment_restores_previous_balance(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    state = reduce(state, gaji_loan(300_000))
    txn_id = state.transactions[0].id
    state = reduce(state, MakePayment(txn_id, 960_000, PAY_DATE))
    installment_id = state.find_transaction(txn_id).installments[0].id

    state = reduce(state, DeletePayment(txn_id, installment_id))

    txn = state.find_transaction(txn_id)
    assert txn.paid_amount == 0
    assert txn.status == LoanStatus.BELUM_LUNAS
    assert txn.installments == ()


def test_delete_payment_unknown_installment_is_ignored(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    txn_id = state.transactions[0].id

    result = apply_action(state, DeletePayment(txn_id, "missing"))

    assert result.applied is False
    assert result.state is state
    assert isinstance(result.error, InstallmentNotFoundError)


# --- Direct edits --------------------------------------------------------------


def test_update_transaction_paid_amount_becomes_manual_adjustment(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    state = reduce(state, gaji_loan(300_000))
    txn_id = state.transactions[0].id
    state = reduce(state, MakePayment(txn_id, 100_000, PAY_DATE))
    state = reduce(state, MakePayment(txn_id, 50_000, PAY_DATE))

    state = reduce(state, UpdateTransaction(txn_id, total_principal=800_000, total_due=960_000, paid_amount=500_000))

    txn = state.find_transaction(txn_id)
    assert txn.paid_amount == 500_000
    assert txn.status == LoanStatus.CICIL
    assert len(txn.installments) == 1
    assert txn.installments[0].amount == 500_000
    assert txn.installments[0].note == MANUAL_ADJUSTMENT_NOTE
    assert txn.installments[0].date == datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


def test_update_transaction_paid_zero_clears_installments(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    txn_id = state.transactions[0].id
    state = reduce(state, MakePayment(txn_id, 100_000, PAY_DATE))

    state = reduce(state, UpdateTransaction(txn_id, total_principal=500_000, total_due=600_000, paid_amount=0))

    txn = state.find_transaction(txn_id)
    assert txn.installments == ()
    assert txn.status == LoanStatus.BELUM_LUNAS


def test_update_transaction_keeps_history_when_paid_unchanged(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    txn_id = state.transactions[0].id
    state = reduce(state, MakePayment(txn_id, 100_000, PAY_DATE))
    state = reduce(state, MakePayment(txn_id, 100_000, PAY_DATE))

    state = reduce(state, UpdateTransaction(txn_id, total_principal=150_000, total_due=200_000, is_priority=True))

    txn = state.find_transaction(txn_id)
    assert len(txn.installments) == 2
    assert txn.status == LoanStatus.LUNAS
    assert txn.is_priority is True


def test_update_arrear_moves_period(reduce, state_with_borrower, make_transaction):
    state = reduce(state_with_borrower, AddArrearManual(make_transaction(id="arr-1", is_arrear=True)))
    started = datetime(2025, 11, 2, tzinfo=timezone.utc)

    state = reduce(
        state,
        UpdateArrear("arr-1", total_principal=450_000, total_due=450_000, created_at=started, due_month="November 2025"),
    )

    txn = state.find_transaction("arr-1")
    assert txn.created_at == started
    assert txn.due_month == "November 2025"
    assert txn.total_due == 450_000


def test_move_loan_category_does_not_merge(reduce, state_with_borrower):
    state = reduce(state_with_borrower, UpdateConfig({"active_month_remon": "April 2026"}))
    state = reduce(state, gaji_loan(500_000))
    state = reduce(state, AddLoan(borrower_id="b-1", principal=100_000, interest_rate=10, category=LoanCategory.REMON))
    gaji_id = next(t.id for t in state.transactions if t.category == LoanCategory.GAJI)

    state = reduce(state, MoveLoanCategory(gaji_id, LoanCategory.REMON))

    moved = state.find_transaction(gaji_id)
    assert moved.category == LoanCategory.REMON
    assert moved.due_month == "April 2026"
    assert len(state.transactions) == 2
    assert find_duplicate_active_loans(state) == [("b-1", LoanCategory.REMON)]


# --- Arrears -------------------------------------------------------------------


def test_add_arrear_manual_merges_active_arrear(reduce, state_with_borrower, make_transaction):
    first = make_transaction(id="arr-1", is_arrear=True, total_principal=400_000, total_due=400_000)
    second = make_transaction(id="arr-2", is_arrear=True, total_principal=100_000, total_due=150_000)

    state = reduce(state_with_borrower, AddArrearManual(first))
    state = reduce(state, AddArrearManual(second))

    assert len(state.transactions) == 1
    txn = state.transactions[0]
    assert txn.id == "arr-1"
    assert txn.total_principal == 500_000
    assert txn.total_due == 550_000
    assert len(txn.entries) == 2


def test_add_arrear_manual_settled_history_is_inserted(reduce, state_with_borrower, make_transaction):
    arrear = make_transaction(id="arr-1", is_arrear=True, total_principal=400_000, total_due=400_000)
    settled = make_transaction(id="old-1", total_principal=200_000, total_due=200_000, paid_amount=200_000)

    state = reduce(state_with_borrower, AddArrearManual(arrear))
    state = reduce(state, AddArrearManual(settled))

    assert [t.id for t in state.transactions] == ["old-1", "arr-1"]
    assert state.find_transaction("old-1").status == LoanStatus.LUNAS


def test_add_arrear_manual_normalizes_status(reduce, state_with_borrower, make_transaction):
    incoming = make_transaction(id="arr-1", is_arrear=True, total_due=400_000, status=LoanStatus.LUNAS)
    state = reduce(state_with_borrower, AddArrearManual(incoming))
    assert state.transactions[0].status == LoanStatus.BELUM_LUNAS


# --- Deletion ------------------------------------------------------------------


def test_delete_transaction(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    state = reduce(state, DeleteTransaction(state.transactions[0].id))
    assert state.transactions == ()


def test_delete_transaction_unknown_is_ignored(state_with_borrower):
    result = apply_action(state_with_borrower, DeleteTransaction("missing"))
    assert result.applied is False
    assert isinstance(result.error, TransactionNotFoundError)


def test_delete_transactions_batch(reduce, state_with_borrower, make_transaction):
    state = state_with_borrower
    for i in range(3):
        state = reduce(state, AddArrearManual(make_transaction(id=f"t-{i}", paid_amount=600_000)))

    state = reduce(state, DeleteTransactionsBatch(("t-0", "t-2", "missing")))

    assert [t.id for t in state.transactions] == ["t-1"]


# --- Config and load -----------------------------------------------------------


def test_update_config_shallow_merge(reduce, state_with_borrower):
    state = reduce(
        state_with_borrower,
        UpdateConfig({"active_cycle": "Remon", "interest_rate_remon": 15, "available_months": ["Juni 2026"]}),
    )

    assert state.config.active_cycle == LoanCategory.REMON
    assert state.config.interest_rate_remon == 15
    assert state.config.available_months == ("Juni 2026",)
    assert state.config.interest_rate_gaji == 20


def test_update_config_unknown_field_is_rejected(state_with_borrower):
    result = apply_action(state_with_borrower, UpdateConfig({"interestRate": 15}))

    assert result.applied is False
    assert result.state is state_with_borrower
    assert isinstance(result.error, InvalidConfigFieldError)


@pytest.mark.parametrize(
    "changes",
    [
        {"interest_rate_gaji": None},
        {"available_months": None},
        {"active_month_remon": None},
        {"interest_rate_remon": True},
        {"enable_auto_sync": "yes"},
        {"available_months": ["Maret 2026", 3]},
    ],
)
def test_update_config_rejects_missing_or_mistyped_values(state_with_borrower, changes):
    result = apply_action(state_with_borrower, UpdateConfig(changes))

    assert result.applied is False
    assert result.state is state_with_borrower
    assert isinstance(result.error, InvalidConfigFieldError)


def test_update_config_clears_script_url(reduce, state_with_borrower):
    state = reduce(state_with_borrower, UpdateConfig({"google_script_url": "https://script.example/exec"}))
    state = reduce(state, UpdateConfig({"google_script_url": None}))

    assert state.config.google_script_url is None
    assert state.config.interest_rate_gaji == 20


def test_update_config_keeps_fractional_rate(reduce, state_with_borrower):
    state = reduce(state_with_borrower, UpdateConfig({"interest_rate_gaji": 12.5}))

    assert state.config.interest_rate_gaji == 12.5


def test_load_state_replaces_everything(reduce, state_with_borrower):
    replacement = AppState(config=AppConfig(active_month_gaji="Mei 2026"))
    assert reduce(state_with_borrower, LoadState(replacement)) is replacement


# --- Whole-reducer properties --------------------------------------------------


def test_actions_do_not_mutate_input(reduce, state_with_borrower):
    state = reduce(state_with_borrower, gaji_loan(500_000))
    before = state_to_dict(state)
    txn_id = state.transactions[0].id

    for action in (
        gaji_loan(100_000),
        MakePayment(txn_id, 50_000, PAY_DATE),
        UpdateBorrower("b-1", name="Andi", credit_limit=1),
        UpdateConfig({"active_month_gaji": "April 2026"}),
        DeleteTransaction(txn_id),
    ):
        reduce(state, action)

    assert state_to_dict(state) == before


def test_reduce_state_never_raises_on_bad_references(state_with_borrower):
    assert reduce_state(state_with_borrower, DeletePayment("missing", "missing")) is state_with_borrower


def test_random_action_sequences_keep_status_consistent(clock, id_factory):
    rng = random.Random(7)
    state = AppState(
        borrowers=(
            Borrower(id="b-1", name="Budi", credit_limit=1_000_000),
            Borrower(id="b-2", name="Sari", credit_limit=2_000_000),
        )
    )

    for _ in range(200):
        roll = rng.random()
        if roll < 0.45 or not state.transactions:
            category = rng.choice(list(LoanCategory))
            action = AddLoan(
                borrower_id=rng.choice(["b-1", "b-2"]),
                principal=rng.randrange(10_000, 500_000, 5_000),
                interest_rate=state.config.interest_rate_for(category),
                category=category,
            )
        elif roll < 0.85:
            txn = rng.choice(state.transactions)
            action = MakePayment(txn.id, rng.randrange(10_000, 400_000, 5_000), PAY_DATE)
        else:
            txn = rng.choice(state.transactions)
            if not txn.installments:
                continue
            action = DeletePayment(txn.id, rng.choice(txn.installments).id)

        state = reduce_state(state, action, clock=clock, new_id=id_factory)
        assert_status_consistent(state)
        for txn in state.transactions:
            assert txn.total_principal == sum(e.principal for e in txn.entries)
