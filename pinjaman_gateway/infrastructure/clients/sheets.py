"""Google Sheets webhook client - fire-and-forget full backups"""

import json
import logging
import httpx
from typing import Any, Dict
from pinjaman_gateway.config import settings
from pinjaman_gateway.domain.exceptions import SyncError
from pinjaman_gateway.utils.date_utils import utcnow
from pinjaman_gateway.infrastructure.observability.metrics import sync_failure_counter

logger = logging.getLogger(__name__)


class SheetsSyncClient:
    """Client posting the whole state to an Apps Script web app"""

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout or settings.sync_timeout_seconds
        self.transport = transport

    async def send_backup(self, script_url: str, data: Dict[str, Any]) -> None:
        """
        Post a FULL_BACKUP event.

        The body is sent as text/plain so Apps Script accepts it without a
        CORS preflight; the script parses the JSON itself.

        Raises:
            SyncError: On network failure or a non-2xx response
        """
        payload = json.dumps({
            "timestamp": utcnow().isoformat(),
            "type": "FULL_BACKUP",
            "data": data,
        })
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(
                    script_url,
                    content=payload,
                    headers={"Content-Type": "text/plain"},
                )
                response.raise_for_status()
            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                raise SyncError(f"Sheets sync failed: {e}") from e

    async def sync(self, script_url: str, data: Dict[str, Any]) -> bool:
        """Best-effort backup: logs and counts failures, never raises, no retry"""
        if not script_url:
            return False
        try:
            await self.send_backup(script_url, data)
        except SyncError as e:
            sync_failure_counter.inc()
            logger.error("Google Sheets sync error", extra={"step": "sheets_sync", "error": str(e)})
            return False
        logger.info("Sync initialized", extra={"step": "sheets_sync"})
        return True
