"""POST /v1/actions and /v1/imports/* - reducer actions over the stored state"""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from pinjaman_gateway.api.v1.schemas import (
    ActionEnvelope,
    ActionResponse,
    ArrearImportRequest,
    BorrowerImportRequest,
    ImportResponse,
)
from pinjaman_gateway.api.dependencies import get_config_id, get_request_id
from pinjaman_gateway.config import settings
from pinjaman_gateway.infrastructure.database.session import get_db
from pinjaman_gateway.infrastructure.database.repositories import StateRepository
from pinjaman_gateway.domain.actions import Action
from pinjaman_gateway.domain.exceptions import InvalidSnapshotError, ReferenceNotFoundError
from pinjaman_gateway.domain.importing import ArrearRow, BorrowerRow, plan_arrear_import, plan_borrower_import
from pinjaman_gateway.domain.models import AppState
from pinjaman_gateway.domain.reducer import apply_action
from pinjaman_gateway.domain.snapshot import state_to_dict
from pinjaman_gateway.domain.store import LoanBook
from pinjaman_gateway.infrastructure.observability.metrics import record_action
from pinjaman_gateway.infrastructure.observability.logging import log_action

router = APIRouter()


def _load_stored_state(repo: StateRepository, config_id: str, request_id: str) -> AppState:
    try:
        return repo.load_app_state(config_id)
    except InvalidSnapshotError as e:
        logging.error(f"Stored state is invalid: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Stored state is invalid")


def _persist(db: Session, repo: StateRepository, config_id: str, state: AppState, request_id: str) -> None:
    try:
        repo.save_app_state(config_id, state)
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to persist state: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/actions", response_model=ActionResponse)
def dispatch_action(
    envelope: ActionEnvelope,
    request: Request,
    db: Session = Depends(get_db),
    config_id: str = Depends(get_config_id),
):
    """
    Apply one reducer action to the stored state.

    Flow:
    1. Load and migrate the stored blob
    2. Translate the request into a domain action
    3. Apply it; unknown ids answer 404 and nothing is written
    4. Persist the new state and return it
    """
    request_id = get_request_id(request)
    repo = StateRepository(db)
    state = _load_stored_state(repo, config_id, request_id)

    try:
        action = envelope.action.to_action(state)
    except InvalidSnapshotError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = apply_action(state, action)
    record_action(action.action_type, result.applied)
    log_action(action.action_type, result.applied, result.error, request_id=request_id)

    if isinstance(result.error, ReferenceNotFoundError):
        raise HTTPException(status_code=404, detail=str(result.error))
    if result.error is not None:
        raise HTTPException(status_code=422, detail=str(result.error))

    if result.applied:
        _persist(db, repo, config_id, result.state, request_id)

    return ActionResponse(
        action_type=action.action_type,
        applied=result.applied,
        state=state_to_dict(result.state),
    )


def _run_import(
    db: Session,
    repo: StateRepository,
    config_id: str,
    book: LoanBook,
    planned: List[Action],
    request_id: str,
) -> ImportResponse:
    initial = book.state
    results = book.dispatch_all(planned)
    for action, result in zip(planned, results):
        record_action(action.action_type, result.applied)

    applied = sum(1 for r in results if r.applied)
    logging.info(
        "Import completed",
        extra={"request_id": request_id, "step": "import", "applied": applied, "ignored": len(results) - applied},
    )

    if book.state is not initial:
        _persist(db, repo, config_id, book.state, request_id)

    return ImportResponse(applied=applied, ignored=len(results) - applied, state=state_to_dict(book.state))


@router.post("/imports/borrowers", response_model=ImportResponse)
def import_borrowers(
    body: BorrowerImportRequest,
    request: Request,
    db: Session = Depends(get_db),
    config_id: str = Depends(get_config_id),
):
    """Add every row as a new borrower (no name deduplication)"""
    request_id = get_request_id(request)
    repo = StateRepository(db)
    book = LoanBook(_load_stored_state(repo, config_id, request_id))
    planned = plan_borrower_import(BorrowerRow(name=r.name, credit_limit=r.credit_limit) for r in body.rows)
    return _run_import(db, repo, config_id, book, planned, request_id)


@router.post("/imports/arrears", response_model=ImportResponse)
def import_arrears(
    body: ArrearImportRequest,
    request: Request,
    db: Session = Depends(get_db),
    config_id: str = Depends(get_config_id),
):
    """Import legacy debt rows, creating missing borrowers by name"""
    request_id = get_request_id(request)
    repo = StateRepository(db)
    book = LoanBook(_load_stored_state(repo, config_id, request_id))
    rows = [
        ArrearRow(
            name=r.name,
            principal=r.principal,
            due_month=r.due_month,
            total_due=r.total_due,
            paid=r.paid,
            date=r.date,
            category=r.category,
        )
        for r in body.rows
    ]
    planned = plan_arrear_import(
        book.state,
        rows,
        body.category,
        default_limit=settings.default_borrower_limit,
    )
    return _run_import(db, repo, config_id, book, planned, request_id)
