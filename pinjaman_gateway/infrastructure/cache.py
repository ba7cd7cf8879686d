"""Local state cache - the offline copy of the whole state blob"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from pinjaman_gateway.config import settings
from pinjaman_gateway.infrastructure.observability.metrics import record_save, state_load_failures_counter

logger = logging.getLogger(__name__)


class LocalStateCache:
    """JSON file holding the last known state"""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or settings.local_cache_path)

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the cached blob, or None when absent or unreadable"""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            state_load_failures_counter.labels(source="local").inc()
            logger.error("Failed to load local state", extra={"path": str(self.path), "error": str(e)})
            return None

        if not isinstance(data, dict):
            state_load_failures_counter.labels(source="local").inc()
            logger.error("Local state is not an object", extra={"path": str(self.path)})
            return None
        return data

    def save(self, blob: Dict[str, Any]) -> bool:
        """Write the blob; failures are logged and reported as False"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(blob, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            record_save("local", ok=False)
            logger.error("Failed to write local state", extra={"path": str(self.path), "error": str(e)})
            return False
        record_save("local", ok=True)
        return True
