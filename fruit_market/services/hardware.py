"""
Scale and camera bridge polling.

While the cart is open the poller asks the bridge for the latest
identification every `interval` seconds. Each reported fruit name that
matches a catalog item exactly is put in the cart, its detected image is
remembered, and a reported weight becomes the line's quantity.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from fruit_market.config import settings
from fruit_market.constants import LATEST_FILES_OK, SOURCE_MANUAL, SOURCE_SCALE
from fruit_market.models import CatalogItem, ItemId
from fruit_market.services.api_client import ApiError, MarketApiClient
from fruit_market.services.cart import CartStore
from fruit_market.utils.formatters import weight

logger = logging.getLogger(__name__)


class HardwarePoller:
    def __init__(self, api: MarketApiClient, store: CartStore, interval: Optional[float] = None):
        self.api = api
        self.store = store
        self.interval = settings.poll_interval if interval is None else interval
        self.catalog: Dict[str, CatalogItem] = {}
        self.images: Dict[str, List[str]] = {}
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    def set_catalog(self, items: Iterable[CatalogItem]) -> None:
        self.catalog = {it.name: it for it in items}

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(self._run(self._generation))
        logger.info("hardware polling started (every %.1fs)", self.interval)

    def stop(self) -> None:
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("hardware polling stopped")

    async def _run(self, generation: int) -> None:
        while generation == self._generation:
            try:
                await self.poll_once(generation)
            except ApiError as e:
                logger.warning("hardware poll failed: %s", e)
            except Exception:
                logger.exception("hardware poll crashed, continuing")
            await asyncio.sleep(self.interval)

    async def poll_once(self, generation: Optional[int] = None) -> int:
        if generation is None:
            generation = self._generation
        data = await self.api.latest_files()
        if generation != self._generation:
            # stopped while the request was in flight
            return 0
        if data.get("status") != LATEST_FILES_OK:
            return 0

        files = data.get("files") or {}
        if not isinstance(files, dict):
            return 0

        matched = 0
        for name, info in files.items():
            item = self.catalog.get(name)
            if item is None:
                logger.debug("bridge reported unknown fruit %r", name)
                continue
            matched += 1
            info = info if isinstance(info, dict) else {}

            self.store.add_item(item)
            image_url = info.get("image_url")
            if image_url:
                seen = self.images.setdefault(str(item.id), [])
                if image_url not in seen:
                    seen.append(image_url)
            if info.get("weight") is not None:
                self.store.set_quantity(item.id, info["weight"], source=SOURCE_SCALE)
        return matched

    def images_for(self, item_id: ItemId) -> List[str]:
        return list(self.images.get(str(item_id), []))

    def forget_images(self) -> None:
        self.images.clear()

    async def weigh(self, item_id: ItemId) -> Tuple[bool, str]:
        """Read the scale once and store it as the weight of `item_id`."""
        line = self.store.get_line(item_id)
        if line is None:
            return False, "item is not in the cart"
        try:
            kg = await self.api.get_weight()
        except ApiError as e:
            logger.warning("scale read failed: %s", e)
            return False, "scale is not responding"
        # the cashier asked for this reading, so it wins over pins
        if not self.store.set_quantity(item_id, kg, source=SOURCE_MANUAL):
            return False, "item is not in the cart"
        return True, f"{line.fruit.name}: {weight(kg)}"
