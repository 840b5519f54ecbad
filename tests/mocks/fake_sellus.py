"""
Stateful stand-in for the Sellus API.

Subclasses SellusClient and replaces `call()`, so the typed helpers and the
workflows run unchanged. Every call is recorded in `calls` and yields to the
event loop once before it touches state, which lets concurrent workflows
interleave the way they would against the real API.
"""

import asyncio
import copy
import re
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import unquote

from wms.services.sellus.client import GatewayResult, SellusClient

Override = Union[GatewayResult, Callable[..., GatewayResult]]


def _ok(data: Any) -> GatewayResult:
    return GatewayResult(success=True, data=data, status_code=200)


def _not_found(what: str) -> GatewayResult:
    return GatewayResult(success=False, error=f"HTTP 404: {what} not found", status_code=404)


class FakeSellusGateway(SellusClient):
    def __init__(self, branch_id: Optional[str] = "5"):
        super().__init__(base_url="https://sellus.test/api", api_key="test-key", branch_id=branch_id)
        self.items: Dict[str, Dict[str, Any]] = {}
        self.item_orders: Dict[str, List[Dict[str, Any]]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.purchase_orders: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]], Optional[Dict[str, Any]]]] = []
        self.overrides: Dict[Tuple[str, str], List[Override]] = {}
        self.stock_drift: Dict[str, int] = {}  # item id -> amount Sellus silently adds after a write

    # Test setup helpers

    def add_item(self, item_id: str, item_number: str, stock: int = 0, **fields) -> Dict[str, Any]:
        item = {"id": item_id, "itemNumber": item_number, "stock": stock, **fields}
        self.items[item_id] = item
        return item

    def add_purchase_order(self, po_id: str, note: str, shipped=0, stock=0, total=0, **fields) -> Dict[str, Any]:
        po = {
            "id": po_id,
            "note": note,
            "shippedQuantity": shipped,
            "stockQuantity": stock,
            "totalStockQuantity": total,
            **fields,
        }
        self.purchase_orders[po_id] = po
        return po

    def respond(self, method: str, path: str, *responses: Override) -> None:
        """Queue canned responses for METHOD path; the last one repeats."""
        self.overrides[(method.upper(), path)] = list(responses)

    def fail(self, method: str, path: str, status_code: Optional[int] = 500, error: str = "Internal Server Error"):
        message = f"HTTP {status_code}: {error}" if status_code else f"Network error: {error}"
        self.respond(method, path, GatewayResult(success=False, error=message, status_code=status_code))

    def calls_to(self, method: str, path: str) -> List[Tuple]:
        return [c for c in self.calls if c[0] == method.upper() and c[1] == path]

    @property
    def writes(self) -> List[Tuple]:
        return [c for c in self.calls if c[0] in ("POST", "PUT", "PATCH")]

    # Transport

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> GatewayResult:
        method = method.upper()
        path = unquote("/" + endpoint.lstrip("/"))
        self.calls.append((method, path, params, copy.deepcopy(body)))
        await asyncio.sleep(0)

        queued = self.overrides.get((method, path))
        if queued:
            response = queued.pop(0) if len(queued) > 1 else queued[0]
            if callable(response):
                return response(body=body, params=params)
            return response

        return self._route(method, path, body, params or {})

    def _route(self, method: str, path: str, body, params) -> GatewayResult:
        if method == "GET" and path in ("/items", "/items/full"):
            return _ok([copy.deepcopy(item) for item in self.items.values()])

        match = re.fullmatch(r"/items/by-item-number/(.+)", path)
        if match and method == "GET":
            for item in self.items.values():
                if item.get("itemNumber") == match.group(1):
                    return _ok(copy.deepcopy(item))
            return _not_found("item")

        match = re.fullmatch(r"/items/([^/]+)/orders", path)
        if match and method == "GET":
            return _ok(copy.deepcopy(self.item_orders.get(match.group(1), [])))

        match = re.fullmatch(r"/items/([^/]+)", path)
        if match:
            item_id = match.group(1)
            if item_id not in self.items:
                return _not_found("item")
            if method == "GET":
                return _ok(copy.deepcopy(self.items[item_id]))
            if method in ("POST", "PUT"):
                updated = {**self.items[item_id], **(body or {})}
                drift = self.stock_drift.get(item_id, 0)
                if drift:
                    updated["stock"] = updated.get("stock", 0) + drift
                self.items[item_id] = updated
                return _ok(copy.deepcopy(updated))

        if method == "GET" and path == "/orders":
            return _ok(copy.deepcopy(list(self.orders.values())))

        match = re.fullmatch(r"/orders/([^/]+)", path)
        if match and method == "GET":
            order = self.orders.get(match.group(1))
            return _ok(copy.deepcopy(order)) if order is not None else _not_found("order")

        if method == "GET" and path == "/purchase-orders":
            reference = str(params.get("filter", "")).strip('"')
            return _ok([copy.deepcopy(po) for po in self.purchase_orders.values() if po.get("note") == reference])

        match = re.fullmatch(r"/purchase-orders/([^/]+)", path)
        if match:
            po_id = match.group(1)
            if po_id not in self.purchase_orders:
                return _not_found("purchase order")
            if method == "GET":
                return _ok(copy.deepcopy(self.purchase_orders[po_id]))
            if method == "POST":
                self.purchase_orders[po_id] = copy.deepcopy(body)
                return _ok(copy.deepcopy(body))

        return GatewayResult(success=False, error=f"HTTP 404: no route {method} {path}", status_code=404)
