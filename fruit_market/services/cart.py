"""
Cart store for the cashier screen.

Rules in force:
- one line per fruit; adding a fruit that is already in the cart changes nothing
- a new line starts at 0 kg until it is weighed or typed in
- 0 kg lines stay in the cart (they add 0 to the total)
- total_item_count() counts lines, not kilograms
- every mutation rewrites the whole cart under CART_STORAGE_KEY
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from fruit_market.config import settings
from fruit_market.constants import CART_STORAGE_KEY, SOURCE_MANUAL, SOURCE_SCALE
from fruit_market.db.sqlite import delete_value, load_value, save_value
from fruit_market.models import CartLine, CatalogItem, ItemId
from fruit_market.utils.validators import coerce_quantity

logger = logging.getLogger(__name__)

Listener = Callable[["CartStore"], None]


def _key(item_id: ItemId) -> str:
    # catalog ids arrive as str or int depending on the endpoint
    return str(item_id)


class CartStore:
    def __init__(
        self,
        db_path: Optional[str] = None,
        storage_key: str = CART_STORAGE_KEY,
        pin_polls: Optional[int] = None,
    ):
        self.db_path = db_path
        self.storage_key = storage_key
        self.pin_polls = settings.manual_pin_polls if pin_polls is None else max(0, pin_polls)
        self._lines: List[CartLine] = []
        self._pins: Dict[str, int] = {}
        self._listeners: List[Listener] = []
        self.load()

    # ---------------- reading ----------------

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    def snapshot(self) -> List[CartLine]:
        return [CartLine(fruit=l.fruit, quantity=l.quantity) for l in self._lines]

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    def get_line(self, item_id: ItemId) -> Optional[CartLine]:
        k = _key(item_id)
        for line in self._lines:
            if _key(line.fruit.id) == k:
                return line
        return None

    def find_by_name(self, name: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.fruit.name == name:
                return line
        return None

    def total_item_count(self) -> int:
        return len(self._lines)

    def total_price(self) -> float:
        return sum((l.fruit.price * l.quantity for l in self._lines), 0.0)

    # ---------------- mutations ----------------

    def add_item(self, item: CatalogItem) -> bool:
        if self.get_line(item.id) is not None:
            return False
        self._lines.append(CartLine(fruit=item, quantity=0.0))
        self._changed()
        return True

    def remove_item(self, item_id: ItemId) -> None:
        k = _key(item_id)
        before = len(self._lines)
        self._lines = [l for l in self._lines if _key(l.fruit.id) != k]
        self._pins.pop(k, None)
        if len(self._lines) != before:
            self._changed()

    def set_quantity(self, item_id: ItemId, value: object, source: str = SOURCE_MANUAL) -> bool:
        """
        Overwrite the weight of a line. Returns False when nothing changed:
        unknown id, or a scale reading arriving while a manual edit is pinned.

        A manual edit pins the line against the next `pin_polls` scale
        writes; each skipped scale write uses up one pin.
        """
        line = self.get_line(item_id)
        if line is None:
            return False

        k = _key(item_id)
        if source == SOURCE_SCALE:
            left = self._pins.get(k, 0)
            if left > 0:
                if left == 1:
                    self._pins.pop(k)
                else:
                    self._pins[k] = left - 1
                logger.debug("scale write to %s skipped, %d pin(s) left", k, left - 1)
                return False
        elif self.pin_polls:
            self._pins[k] = self.pin_polls

        line.quantity = coerce_quantity(value)
        self._changed()
        return True

    def clear(self) -> None:
        self._lines = []
        self._pins.clear()
        self._changed()

    def pinned(self, item_id: ItemId) -> int:
        return self._pins.get(_key(item_id), 0)

    # ---------------- change hooks / persistence ----------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        self.save()
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("cart listener failed")

    def save(self) -> None:
        if not self._lines:
            delete_value(self.storage_key, self.db_path)
            return
        raw = json.dumps([l.to_dict() for l in self._lines], ensure_ascii=False)
        save_value(self.storage_key, raw, self.db_path)

    def load(self) -> None:
        self._lines = []
        self._pins.clear()
        raw = load_value(self.storage_key, self.db_path)
        if not raw:
            return
        try:
            rows = json.loads(raw)
            lines = [CartLine.from_dict(r) for r in rows]
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning("stored cart is unreadable, starting empty: %s", e)
            return
        seen = set()
        for line in lines:
            k = _key(line.fruit.id)
            if k in seen:
                continue
            seen.add(k)
            line.quantity = coerce_quantity(line.quantity)
            self._lines.append(line)
