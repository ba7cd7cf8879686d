"""Data access layer for the state blob"""

from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from pinjaman_gateway.infrastructure.database.models import AppStateRecord
from pinjaman_gateway.domain.migration import load_snapshot
from pinjaman_gateway.domain.models import AppState
from pinjaman_gateway.domain.snapshot import state_to_dict


class StateRepository:
    """Repository for the whole-state JSON document"""

    def __init__(self, db: Session):
        self.db = db

    def get_record(self, config_id: str) -> Optional[AppStateRecord]:
        return (
            self.db.query(AppStateRecord)
            .filter(AppStateRecord.config_id == config_id)
            .first()
        )

    def get_state(self, config_id: str) -> Optional[Dict[str, Any]]:
        """Stored blob, or None when nothing was saved yet"""
        record = self.get_record(config_id)
        return record.app_data if record else None

    def upsert_state(self, config_id: str, data: Dict[str, Any]) -> AppStateRecord:
        """Replace the stored blob wholesale (last writer wins)"""
        record = self.get_record(config_id)
        if record is None:
            record = AppStateRecord(config_id=config_id, app_data=data)
            self.db.add(record)
        else:
            record.app_data = data
        self.db.flush()
        return record

    def load_app_state(self, config_id: str) -> AppState:
        """
        Stored state migrated to the current schema; a fresh default state
        when nothing was saved yet.

        Raises:
            InvalidSnapshotError: the stored blob cannot be parsed
        """
        data = self.get_state(config_id)
        if data is None:
            return AppState()
        return load_snapshot(data)

    def save_app_state(self, config_id: str, state: AppState) -> AppStateRecord:
        return self.upsert_state(config_id, state_to_dict(state))
