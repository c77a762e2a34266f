"""
HTTP client for the Fresh Fruit Market API.

Every persistent record (fruits, customers, bills) and the scale / camera
bridge live behind this API; the cashier app keeps no copy of them.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx

from fruit_market.config import settings
from fruit_market.models import Bill, CatalogItem, Customer
from fruit_market.utils.validators import coerce_quantity

T = TypeVar("T")


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MarketApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e}") from e
        return response

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, **kwargs)
        if response.status_code >= 400:
            raise ApiError(
                f"{method} {path} -> {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned invalid JSON", response.status_code) from e

    @staticmethod
    def _parse(what: str, parse: Callable[[Any], T], data: Any) -> T:
        try:
            return parse(data)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise ApiError(f"malformed {what}: {e}") from e

    # ---------------- catalog ----------------

    async def list_fruits(self) -> List[CatalogItem]:
        data = await self._json("GET", "/fruits/")
        return [self._parse("fruit", CatalogItem.from_api, row) for row in data or []]

    # ---------------- hardware bridge ----------------

    async def get_weight(self) -> float:
        data = await self._json("GET", "/hardware/get_weight")
        return coerce_quantity((data or {}).get("weight"))

    async def latest_files(self) -> Dict[str, Any]:
        data = await self._json("GET", "/files/latest")
        return data if isinstance(data, dict) else {}

    # ---------------- customers ----------------

    async def search_customers(self, phone: str) -> List[Customer]:
        try:
            data = await self._json("GET", f"/customer/search/{phone}")
        except ApiError as e:
            if e.status_code == 404:
                return []
            raise
        if isinstance(data, dict):
            data = [data]
        return [self._parse("customer", Customer.from_api, row) for row in data or []]

    async def create_customer(self, name: str, phone: str, address: str) -> Customer:
        body = Customer(id=None, name=name, phone=phone, address=address).to_api()
        data = await self._json("POST", "/customer", json=body)
        return self._parse("customer", Customer.from_api, data)

    async def update_customer(self, customer: Customer) -> Customer:
        if customer.id is None:
            raise ApiError("customer has no id")
        data = await self._json("PUT", f"/customer/{customer.id}", json=customer.to_api())
        return self._parse("customer", Customer.from_api, data)

    # ---------------- bills ----------------

    async def create_bill(self, payload: Dict[str, Any]) -> Bill:
        data = await self._json("POST", "/bill", json=payload)
        return self._parse("bill", Bill.from_api, data if isinstance(data, dict) else {})

    async def get_bill(self, bill_id: int) -> Bill:
        data = await self._json("GET", f"/bill/{bill_id}")
        return self._parse("bill", Bill.from_api, data)

    async def list_bills(self) -> List[Bill]:
        data = await self._json("GET", "/ViewAllBill")
        return [self._parse("bill", Bill.from_api, row) for row in data or []]
