"""
Tests for the scale / camera bridge poller.
"""

import asyncio

import httpx
import pytest

from fruit_market.services.hardware import HardwarePoller


def _latest(files, status="success"):
    return {"status": status, "files": files}


@pytest.fixture
def poller(api, store, apple, banana, mango):
    p = HardwarePoller(api, store, interval=0.01)
    p.set_catalog([apple, banana, mango])
    return p


class TestPollOnce:
    """Applying one identification result."""

    @pytest.mark.asyncio
    async def test_reported_fruit_is_added_with_weight_and_image(self, backend, poller, store, apple):
        backend.set("GET", "/files/latest", body=_latest({"Apple": {"image_url": "cam/1.jpg", "weight": "0.75"}}))

        matched = await poller.poll_once()

        assert matched == 1
        assert store.get_line(apple.id).quantity == 0.75
        assert poller.images_for(apple.id) == ["cam/1.jpg"]

    @pytest.mark.asyncio
    async def test_without_weight_line_stays_at_zero(self, backend, poller, store, banana):
        backend.set("GET", "/files/latest", body=_latest({"Banana": {"image_url": "cam/2.jpg"}}))

        await poller.poll_once()

        assert store.get_line(banana.id).quantity == 0.0

    @pytest.mark.asyncio
    async def test_unknown_names_are_ignored(self, backend, poller, store):
        backend.set("GET", "/files/latest", body=_latest({"apple": {"weight": 1}, "Durian": {"weight": 2}}))

        assert await poller.poll_once() == 0
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_non_success_status_changes_nothing(self, backend, poller, store):
        backend.set("GET", "/files/latest", body=_latest({"Apple": {"weight": 1}}, status="pending"))

        assert await poller.poll_once() == 0
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_images_are_appended_once_each(self, backend, poller, mango):
        for url in ("cam/a.jpg", "cam/b.jpg", "cam/a.jpg"):
            backend.set("GET", "/files/latest", body=_latest({"Mango": {"image_url": url}}))
            await poller.poll_once()

        assert poller.images_for(mango.id) == ["cam/a.jpg", "cam/b.jpg"]

    @pytest.mark.asyncio
    async def test_repeated_reports_keep_one_line(self, backend, poller, store, apple):
        backend.set("GET", "/files/latest", body=_latest({"Apple": {"weight": 1.0}}))
        await poller.poll_once()
        backend.set("GET", "/files/latest", body=_latest({"Apple": {"weight": 1.4}}))
        await poller.poll_once()

        assert len(store) == 1
        assert store.get_line(apple.id).quantity == 1.4

    @pytest.mark.asyncio
    async def test_manual_edit_beats_next_scale_readings(self, backend, poller, store, apple):
        store.add_item(apple)
        store.set_quantity(apple.id, 2.0)
        backend.set("GET", "/files/latest", body=_latest({"Apple": {"weight": 0.1}}))

        await poller.poll_once()
        await poller.poll_once()
        assert store.get_line(apple.id).quantity == 2.0

        await poller.poll_once()
        assert store.get_line(apple.id).quantity == 0.1


class TestPollLoop:
    """Starting, stopping and surviving failures."""

    @pytest.mark.asyncio
    async def test_loop_survives_failed_polls(self, backend, poller, store, apple):
        calls = []

        def flaky(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503, json={"detail": "bridge down"})
            return httpx.Response(200, json=_latest({"Apple": {"weight": 0.5}}))

        backend.set_handler("GET", "/files/latest", flaky)

        poller.start()
        for _ in range(200):
            if store.get_line(apple.id) is not None:
                break
            await asyncio.sleep(0.01)
        poller.stop()

        assert len(calls) >= 3
        assert store.get_line(apple.id).quantity == 0.5

    @pytest.mark.asyncio
    async def test_loop_survives_transport_errors(self, backend, poller):
        def broken(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend.set_handler("GET", "/files/latest", broken)

        poller.start()
        await asyncio.sleep(0.05)
        assert poller.running
        poller.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_task(self, backend, poller):
        backend.set("GET", "/files/latest", body=_latest({}))

        poller.start()
        poller.start()
        assert poller.running

        poller.stop()
        await asyncio.sleep(0.02)

        assert not poller.running
        count = len(backend.requests)
        await asyncio.sleep(0.05)
        assert len(backend.requests) == count

    @pytest.mark.asyncio
    async def test_late_response_after_stop_is_dropped(self, backend, poller, store):
        backend.set("GET", "/files/latest", body=_latest({"Apple": {"weight": 1}}))
        generation = poller._generation

        poller.stop()
        matched = await poller.poll_once(generation)

        assert matched == 0
        assert len(store) == 0


class TestWeigh:
    """Explicit scale readings."""

    @pytest.mark.asyncio
    async def test_weigh_sets_quantity_from_scale(self, backend, poller, store, banana):
        store.add_item(banana)
        store.set_quantity(banana.id, 9)
        backend.set("GET", "/hardware/get_weight", body={"weight": "1.234"})

        ok, text = await poller.weigh(banana.id)

        assert ok is True
        assert "Banana" in text
        assert store.get_line(banana.id).quantity == 1.234

    @pytest.mark.asyncio
    async def test_weigh_missing_line(self, poller):
        ok, _ = await poller.weigh("404")
        assert ok is False

    @pytest.mark.asyncio
    async def test_weigh_line_removed_while_reading(self, backend, poller, store, banana):
        """The line disappears while the scale request is in flight."""
        store.add_item(banana)

        def read_scale(request):
            store.remove_item(banana.id)
            return httpx.Response(200, json={"weight": 0.7})

        backend.set_handler("GET", "/hardware/get_weight", read_scale)

        ok, text = await poller.weigh(banana.id)

        assert ok is False
        assert text == "item is not in the cart"
        assert store.get_line(banana.id) is None

    @pytest.mark.asyncio
    async def test_weigh_scale_down_keeps_quantity(self, backend, poller, store, banana):
        store.add_item(banana)
        store.set_quantity(banana.id, 0.4)
        backend.set("GET", "/hardware/get_weight", status=500, body={"detail": "scale offline"})

        ok, _ = await poller.weigh(banana.id)

        assert ok is False
        assert store.get_line(banana.id).quantity == 0.4
