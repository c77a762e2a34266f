"""
Pytest configuration and fixtures for the cashier tests.
"""

import json

import httpx
import pytest

from fruit_market.models import CatalogItem
from fruit_market.services.api_client import MarketApiClient
from fruit_market.services.cart import CartStore


class FakeMarketApi:
    """
    In-process stand-in for the market API, served through httpx.MockTransport.
    Routes are keyed by (method, path); unknown routes answer 404.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def set(self, method, path, status=200, body=None):
        self.routes[(method, path)] = (status, body)

    def set_handler(self, method, path, handler):
        self.routes[(method, path)] = handler

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def json_of(self, request):
        return json.loads(request.content.decode("utf-8"))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)


@pytest.fixture
def backend():
    return FakeMarketApi()


@pytest.fixture
def api(backend):
    return MarketApiClient(
        base_url="http://market.test",
        timeout=1.0,
        transport=httpx.MockTransport(backend.handle),
    )


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "market.db")


@pytest.fixture
def store(db_path):
    return CartStore(db_path=db_path, pin_polls=2)


@pytest.fixture
def apple():
    return CatalogItem(id="1", name="Apple", price=4.0, image="apple.jpg", category="pome", quantity=50)


@pytest.fixture
def banana():
    return CatalogItem(id="2", name="Banana", price=2.5, image="banana.jpg", category="tropical", quantity=30)


@pytest.fixture
def mango():
    return CatalogItem(id=3, name="Mango", price=6.0, image="mango.jpg", category="tropical", quantity=12)


@pytest.fixture
def catalog_rows(apple, banana, mango):
    return [apple.to_dict(), banana.to_dict(), mango.to_dict()]
