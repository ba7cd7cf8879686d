"""Remote state store HTTP client - whole-blob load and save"""

import httpx
from typing import Any, Dict, Optional
from pinjaman_gateway.domain.exceptions import StateStoreError
from pinjaman_gateway.config import settings


class StateStoreClient:
    """Client for the server-backed state blob (GET/POST /api/state)"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.state_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def load(self) -> Optional[Dict[str, Any]]:
        """
        Fetch the stored state blob.

        Returns:
            The blob, or None when nothing has been stored yet

        Raises:
            StateStoreError: On timeout, HTTP errors, or a non-object body
        """
        async with self._client() as client:
            try:
                response = await client.get(f"{self.base_url}/api/state")
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                raise StateStoreError(f"State store timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise StateStoreError(f"State store error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise StateStoreError(f"State store unreachable: {e}") from e
            except ValueError as e:
                raise StateStoreError(f"Invalid JSON from state store: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise StateStoreError(f"Unexpected state payload type: {type(data).__name__}")
        return data

    async def save(self, blob: Dict[str, Any]) -> None:
        """
        Overwrite the stored blob with the full current state.

        Raises:
            StateStoreError: On timeout or HTTP errors
        """
        async with self._client() as client:
            try:
                response = await client.post(f"{self.base_url}/api/state", json=blob)
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise StateStoreError(f"State store timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise StateStoreError(f"State store error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise StateStoreError(f"State store unreachable: {e}") from e
