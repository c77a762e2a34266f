from __future__ import annotations

import logging
from typing import Optional, Tuple

from fruit_market.models import Bill, CatalogItem
from fruit_market.services.api_client import ApiError, MarketApiClient
from fruit_market.services.cart import CartStore
from fruit_market.services.checkout import CheckoutFlow, CheckoutState
from fruit_market.services.hardware import HardwarePoller

logger = logging.getLogger(__name__)


class CartSession:
    """
    The cart view of one cashier station. Built once at startup and handed to
    the bot and the web app; owns the poller and the running checkout.
    """

    def __init__(
        self,
        api: MarketApiClient,
        store: CartStore,
        staff_id: int,
        interval: Optional[float] = None,
    ):
        self.api = api
        self.store = store
        self.staff_id = staff_id
        self.poller = HardwarePoller(api, store, interval=interval)
        self.checkout: Optional[CheckoutFlow] = None
        self.last_bill: Optional[Bill] = None
        self.is_open = False

    @property
    def catalog(self) -> dict:
        return self.poller.catalog

    async def refresh_catalog(self) -> Tuple[bool, str]:
        try:
            items = await self.api.list_fruits()
        except ApiError as e:
            logger.error("catalog fetch failed: %s", e)
            return False, "could not load fruits"
        self.poller.set_catalog(items)
        return True, f"{len(items)} fruits"

    def find_item(self, key: str) -> Optional[CatalogItem]:
        key = (key or "").strip()
        if key in self.catalog:
            return self.catalog[key]
        for item in self.catalog.values():
            if str(item.id) == key or item.name.lower() == key.lower():
                return item
        return None

    async def open(self) -> Tuple[bool, str]:
        if self.is_open:
            return True, "cart is already open"
        ok, msg = await self.refresh_catalog()
        self.is_open = True
        if self.checkout is None:
            self.poller.start()
        return ok, msg

    async def close(self) -> None:
        self.poller.stop()
        self.poller.forget_images()
        self.checkout = None
        self.is_open = False

    def begin_checkout(self) -> CheckoutFlow:
        if self.checkout is None or self.checkout.state == CheckoutState.COMPLETE:
            self.checkout = CheckoutFlow(
                self.api, self.store, self.staff_id, on_complete=self._checkout_complete
            )
        self.poller.stop()
        return self.checkout

    def cancel_checkout(self) -> None:
        if self.checkout is not None and self.checkout.state == CheckoutState.SUBMITTING:
            return
        self.checkout = None
        if self.is_open:
            self.poller.start()

    async def _checkout_complete(self, bill: Bill) -> None:
        self.last_bill = bill
        await self.close()
