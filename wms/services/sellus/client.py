import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from wms.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

BODY_METHODS = ("POST", "PUT", "PATCH")


@dataclass
class GatewayResult:
    """Outcome of one Sellus call. Failures are values, never exceptions."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    duration_ms: int = 0
    status_code: Optional[int] = None

    @property
    def remote_unavailable(self) -> bool:
        """Network failure or a server-side error (other than 501)."""
        if self.success:
            return False
        return self.status_code is None or (self.status_code >= 500 and self.status_code != 501)

    @property
    def method_not_allowed(self) -> bool:
        return not self.success and self.status_code in (405, 501)


class SellusClient:
    """
    Asynchronous client for the Sellus (FDT) REST API.

    Every outbound Sellus call goes through `call()`, which handles
    authentication, JSON encoding, timing and error capture. The typed
    helpers below wrap the endpoints the sync workflows use; branch-scoped
    endpoints get `branchId` appended when a branch is configured.

    The client never raises for HTTP or network failures: check
    `GatewayResult.success`. Recording the outcome in the sync ledger is the
    caller's job.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        branch_id: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.branch_id = branch_id or None
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SellusClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.SELLUS_BASE_URL,
            api_key=settings.SELLUS_API_KEY,
            branch_id=settings.SELLUS_BRANCH_ID,
            timeout=settings.SELLUS_TIMEOUT_SECONDS,
        )

    def _get_headers(self, method: str) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        if method in BODY_METHODS:
            headers["Content-Type"] = "application/json"
        return headers

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> GatewayResult:
        """
        Make a request to the Sellus API.

        Args:
            endpoint: API path relative to the base URL, e.g. "/items/55"
            method: HTTP method
            body: JSON payload, sent only for POST/PUT/PATCH
            params: Query parameters

        Returns:
            GatewayResult with `data` set on 2xx, `error` otherwise
        """
        started = time.monotonic()
        method = method.upper()

        if not self.base_url or not self.api_key:
            return GatewayResult(
                success=False,
                error="Sellus API is not configured (SELLUS_BASE_URL / SELLUS_API_KEY missing)",
                duration_ms=self._elapsed_ms(started),
            )

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        request_kwargs: Dict[str, Any] = {
            "method": method,
            "url": url,
            "headers": self._get_headers(method),
        }
        if params:
            request_kwargs["params"] = params
        if method in BODY_METHODS and body is not None:
            request_kwargs["json"] = body

        logger.debug(f"Sellus {method} {url} params={params}")
        if body is not None and method in BODY_METHODS:
            logger.debug(f"Sellus payload: {json.dumps(body, default=str)[:500]}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(**request_kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"Sellus {method} {endpoint} timed out: {str(e)}")
            return GatewayResult(
                success=False,
                error=f"Request timed out: {str(e)}",
                duration_ms=self._elapsed_ms(started),
            )
        except httpx.RequestError as e:
            logger.warning(f"Sellus {method} {endpoint} network error: {str(e)}")
            return GatewayResult(
                success=False,
                error=f"Network error: {str(e)}",
                duration_ms=self._elapsed_ms(started),
            )

        duration_ms = self._elapsed_ms(started)
        status_code = response.status_code

        if not 200 <= status_code < 300:
            error = f"HTTP {status_code}: {response.text}"
            if status_code == 401:
                hint = response.headers.get("WWW-Authenticate")
                if hint:
                    error = f"{error} (WWW-Authenticate: {hint})"
            logger.warning(f"Sellus {method} {endpoint} failed: {error[:300]}")
            return GatewayResult(success=False, error=error, duration_ms=duration_ms, status_code=status_code)

        if status_code == 204 or not response.content:
            return GatewayResult(success=True, data={}, duration_ms=duration_ms, status_code=status_code)

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Sellus {method} {endpoint} returned a non-JSON body")
            return GatewayResult(
                success=False,
                error=f"Non-JSON response body: {response.text[:200]}",
                duration_ms=duration_ms,
                status_code=status_code,
            )

        return GatewayResult(success=True, data=data, duration_ms=duration_ms, status_code=status_code)

    def _branch_params(self, **extra) -> Dict[str, Any]:
        params = {key: value for key, value in extra.items() if value is not None}
        if self.branch_id:
            params["branchId"] = self.branch_id
        return params

    # Items

    async def get_items(self) -> GatewayResult:
        return await self.call("/items", params=self._branch_params())

    async def get_items_full(self) -> GatewayResult:
        return await self.call("/items/full", params=self._branch_params())

    async def get_item(self, item_id: str) -> GatewayResult:
        return await self.call(f"/items/{quote(str(item_id), safe='')}")

    async def get_item_by_number(self, item_number: str) -> GatewayResult:
        return await self.call(f"/items/by-item-number/{quote(str(item_number), safe='')}")

    async def get_item_orders(self, item_id: str) -> GatewayResult:
        return await self.call(
            f"/items/{quote(str(item_id), safe='')}/orders", params=self._branch_params()
        )

    async def update_item(self, item_id: str, payload: Dict[str, Any], method: str = "POST") -> GatewayResult:
        return await self.call(f"/items/{quote(str(item_id), safe='')}", method=method, body=payload)

    # Orders

    async def get_order(self, order_id: str) -> GatewayResult:
        return await self.call(f"/orders/{quote(str(order_id), safe='')}")

    async def list_orders(self, since: Optional[str] = None) -> GatewayResult:
        return await self.call("/orders", params=self._branch_params(since=since))

    # Purchase orders

    async def search_purchase_orders(self, reference: str) -> GatewayResult:
        return await self.call("/purchase-orders", params={"filter": f'"{reference}"'})

    async def get_purchase_order(self, purchase_order_id: str) -> GatewayResult:
        return await self.call(f"/purchase-orders/{quote(str(purchase_order_id), safe='')}")

    async def update_purchase_order(self, purchase_order_id: str, payload: Dict[str, Any]) -> GatewayResult:
        return await self.call(
            f"/purchase-orders/{quote(str(purchase_order_id), safe='')}", method="POST", body=payload
        )
