"""
A1Base messaging gateway client.

Thin async wrapper over the three gateway send endpoints the agent uses:
- POST {base_url}/messages/individual/{account_id}/send
- POST {base_url}/messages/group/{account_id}/send
- POST {base_url}/emails/{account_id}/send

Requests are authenticated with the X-API-Key / X-API-Secret header pair. Any transport
failure or non-2xx answer is raised as GatewaySendError; the caller decides whether that
is fatal. The underlying httpx.AsyncClient is created on first use and closed with
`aclose()` when the application shuts down.
"""

import time
from typing import Any, Dict, Optional

import httpx

from config.logging_config import get_logger
from monitoring.metrics import GATEWAY_REQUEST_TIME
from shared.exceptions import GatewaySendError

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.a1base.com/v1"


class A1BaseClient:
    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = {
            "X-API-Key": api_key or "",
            "X-API-Secret": api_secret or "",
            "Content-Type": "application/json",
        }
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send_individual(self, account_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send `{content, from, to, service}` to a single recipient."""
        return await self._post(f"/messages/individual/{account_id}/send", payload, "individual")

    async def send_group(self, account_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send `{content, from, thread_id, service}` to a group thread."""
        return await self._post(f"/messages/group/{account_id}/send", payload, "group")

    async def send_email(self, account_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send `{sender_address, recipient_address, subject, body, headers}` as an email."""
        return await self._post(f"/emails/{account_id}/send", payload, "email")

    async def _post(self, path: str, payload: Dict[str, Any], endpoint: str) -> Dict[str, Any]:
        start_time = time.time()
        try:
            response = await self._http().post(path, json=payload)
        except httpx.HTTPError as e:
            raise GatewaySendError(f"Gateway {endpoint} send failed: {e}") from e
        finally:
            GATEWAY_REQUEST_TIME.labels(endpoint=endpoint).observe(time.time() - start_time)

        if response.is_error:
            logger.error(
                f"Gateway {endpoint} send rejected with HTTP {response.status_code}",
                extra={'status_code': response.status_code, 'response_body': response.text[:500]}
            )
            raise GatewaySendError(
                f"Gateway {endpoint} send rejected with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        return data if isinstance(data, dict) else {"data": data}
