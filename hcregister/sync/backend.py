"""HTTP client for the shared-state backend.

``GET <endpoint>`` returns the last saved ``{records, activities}`` document
(or an empty body / ``{}`` before anything was saved); ``POST <endpoint>``
replaces it. Any non-2xx status is a failure. There is no retry and, unless
configured, no timeout.
"""

from __future__ import annotations

from collections.abc import Sequence

import httpx
import structlog
from pydantic import ValidationError

from hcregister.config import BackendConfig
from hcregister.exceptions import BackendError
from hcregister.models import ActivityLog, HouseConnectionRecord, SharedState

logger = structlog.get_logger(__name__)


class BackendClient:
    """Fetch and save the shared document over HTTP.

    Example:
        >>> client = BackendClient(config.backend)
        >>> state = await client.fetch_state()   # None: no usable shared data
        >>> await client.save_state(records, activities)
    """

    def __init__(self, config: BackendConfig, transport: httpx.AsyncBaseTransport | None = None):
        if not config.url:
            raise ValueError("BackendConfig.url is required for BackendClient")
        self.url = config.url
        self.timeout = httpx.Timeout(config.timeout_seconds)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def fetch_state(self) -> SharedState | None:
        """Fetch the shared document.

        Returns:
            SharedState when the body holds both a records list and an
            activities list; None for network errors, non-2xx, empty or
            malformed payloads (logged, never raised)
        """
        try:
            async with self._client() as client:
                response = await client.get(self.url)
        except httpx.HTTPError as e:
            logger.warning("backend_fetch_failed", url=self.url, error=str(e))
            return None

        if not response.is_success:
            logger.warning("backend_fetch_rejected", url=self.url, status=response.status_code)
            return None

        if not response.content.strip():
            logger.info("backend_fetch_empty", url=self.url)
            return None

        try:
            body = response.json()
        except ValueError as e:
            logger.warning("backend_fetch_malformed", url=self.url, error=str(e))
            return None

        if not isinstance(body, dict) or not isinstance(body.get("records"), list) or not isinstance(
            body.get("activities"), list
        ):
            logger.info("backend_no_shared_state", url=self.url)
            return None

        try:
            return SharedState.model_validate(body)
        except ValidationError as e:
            logger.warning("backend_fetch_malformed", url=self.url, error=str(e))
            return None

    async def save_state(
        self,
        records: Sequence[HouseConnectionRecord],
        activities: Sequence[ActivityLog],
    ) -> None:
        """Replace the shared document with the given collections.

        Raises:
            BackendError: On network error or non-2xx status
        """
        body = SharedState(records=list(records), activities=list(activities)).to_wire()
        try:
            async with self._client() as client:
                response = await client.post(self.url, json=body)
        except httpx.HTTPError as e:
            raise BackendError(f"Could not reach {self.url}: {e}") from e

        if not response.is_success:
            raise BackendError(
                f"Backend rejected save with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logger.info("backend_saved", url=self.url, records=len(records), activities=len(activities))
