"""GET/POST /api/state - whole-state blob store"""

import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from pinjaman_gateway.api.dependencies import get_config_id
from pinjaman_gateway.infrastructure.database.session import get_db
from pinjaman_gateway.infrastructure.database.repositories import StateRepository

router = APIRouter()


@router.get("/state")
def get_state(
    db: Session = Depends(get_db),
    config_id: str = Depends(get_config_id),
) -> Optional[Dict[str, Any]]:
    """
    Return the stored state blob exactly as saved.

    Returns:
        The blob, or null when nothing has been stored yet
    """
    return StateRepository(db).get_state(config_id)


@router.post("/state")
def save_state(
    blob: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    config_id: str = Depends(get_config_id),
):
    """Overwrite the stored blob (last writer wins, no merge)"""
    try:
        StateRepository(db).upsert_state(config_id, blob)
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Failed to save state: {e}", extra={"config_id": config_id})
        raise HTTPException(status_code=500, detail="Failed to save state")

    return {"message": "State saved"}
