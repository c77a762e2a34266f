"""
Tests for CartSession: polling lifetime around checkout.
"""

import asyncio

import pytest

from fruit_market.services.checkout import CheckoutState
from fruit_market.services.session import CartSession


@pytest.fixture
def session(api, store):
    return CartSession(api, store, staff_id=5, interval=0.01)


class TestCartSession:

    @pytest.mark.asyncio
    async def test_open_loads_catalog_and_starts_polling(self, backend, session, catalog_rows):
        backend.set("GET", "/fruits/", body=catalog_rows)
        backend.set("GET", "/files/latest", body={"status": "success", "files": {}})

        ok, _ = await session.open()

        assert ok is True
        assert session.is_open
        assert session.poller.running
        assert session.find_item("banana").name == "Banana"
        assert session.find_item("3").name == "Mango"
        await session.close()

    @pytest.mark.asyncio
    async def test_open_with_catalog_down_still_opens(self, backend, session):
        backend.set("GET", "/fruits/", status=503, body={})

        ok, _ = await session.open()

        assert ok is False
        assert session.is_open
        await session.close()

    @pytest.mark.asyncio
    async def test_checkout_pauses_polling(self, backend, session, catalog_rows):
        backend.set("GET", "/fruits/", body=catalog_rows)
        backend.set("GET", "/files/latest", body={"status": "success", "files": {}})
        await session.open()

        flow = session.begin_checkout()
        assert not session.poller.running
        assert flow.state == CheckoutState.CHOOSING_CUSTOMER_MODE

        session.cancel_checkout()
        assert session.checkout is None
        assert session.poller.running
        await session.close()

    @pytest.mark.asyncio
    async def test_completed_checkout_clears_and_closes(self, backend, session, store, catalog_rows, apple):
        backend.set("GET", "/fruits/", body=catalog_rows)
        backend.set("GET", "/files/latest", body={"status": "success", "files": {}})
        backend.set("POST", "/bill", body={"id": 21})
        await session.open()
        store.add_item(apple)
        store.set_quantity(apple.id, 2)

        flow = session.begin_checkout()
        flow.continue_as_guest()
        ok, _ = await flow.place_order()

        assert ok is True
        assert len(store) == 0
        assert session.last_bill.id == 21
        assert session.checkout is None
        assert not session.is_open
        assert not session.poller.running

    @pytest.mark.asyncio
    async def test_close_stops_updates(self, backend, session, store, catalog_rows):
        backend.set("GET", "/fruits/", body=catalog_rows)
        backend.set("GET", "/files/latest", body={"status": "success", "files": {}})
        await session.open()
        await session.close()

        backend.set("GET", "/files/latest", body={"status": "success", "files": {"Apple": {"weight": 1}}})
        await asyncio.sleep(0.05)

        assert len(store) == 0
