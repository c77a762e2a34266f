from __future__ import annotations

import enum
import inspect
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from fruit_market.constants import GUEST_CUSTOMER_ID
from fruit_market.models import Bill, BillDetail, Customer
from fruit_market.services.api_client import ApiError, MarketApiClient
from fruit_market.services.cart import CartStore
from fruit_market.utils.formatters import money, weight
from fruit_market.utils.validators import require_non_empty, require_positive_number

logger = logging.getLogger(__name__)

CompleteHook = Callable[[Bill], Union[Awaitable[None], None]]

GENERIC_FAILURE = "Something went wrong, please try again"


class CheckoutState(enum.Enum):
    CHOOSING_CUSTOMER_MODE = "choosing_customer_mode"
    FINDING_CUSTOMER = "finding_customer"
    CREATING_CUSTOMER = "creating_customer"
    CUSTOMER_RESOLVED = "customer_resolved"
    SUBMITTING = "submitting"
    COMPLETE = "complete"


@dataclass
class ContactForm:
    phone: str = ""
    name: str = ""
    address: str = ""


class CheckoutFlow:
    """
    One checkout of the current cart.

    choosing mode -> finding | creating customer -> resolved -> submitting -> complete

    Failures leave the flow in the state it was in before the step (a failed
    submission goes back to CUSTOMER_RESOLVED) and the cart is cleared only
    after the bill has been created.
    """

    def __init__(
        self,
        api: MarketApiClient,
        store: CartStore,
        staff_id: int,
        on_complete: Optional[CompleteHook] = None,
    ):
        self.api = api
        self.store = store
        self.staff_id = staff_id
        self.on_complete = on_complete

        self.state = CheckoutState.CHOOSING_CUSTOMER_MODE
        self.found_customer: Optional[Customer] = None
        self.contact = ContactForm()
        self.message = ""
        self.bill_id: Optional[int] = None
        self.bill: Optional[Bill] = None

    # ---------------- customer mode ----------------

    def _editable(self) -> bool:
        return self.state not in (CheckoutState.SUBMITTING, CheckoutState.COMPLETE)

    def choose_find(self) -> None:
        if self._editable():
            self.state = CheckoutState.FINDING_CUSTOMER
            self.message = ""

    def choose_create(self) -> None:
        if self._editable():
            self.state = CheckoutState.CREATING_CUSTOMER
            self.message = ""

    def continue_as_guest(self) -> None:
        if self._editable():
            self.found_customer = None
            self.contact = ContactForm()
            self.state = CheckoutState.CUSTOMER_RESOLVED
            self.message = ""

    def back(self) -> None:
        if self._editable():
            self.state = CheckoutState.CHOOSING_CUSTOMER_MODE
            self.found_customer = None
            self.message = ""

    async def find_customer(self, phone: str) -> Tuple[bool, str]:
        if self.state != CheckoutState.FINDING_CUSTOMER:
            return False, "choose 'find customer' first"
        try:
            phone = require_non_empty(phone, "phone")
        except ValueError as e:
            self.message = str(e)
            return False, self.message

        try:
            found = await self.api.search_customers(phone)
        except ApiError as e:
            logger.error("customer search failed: %s", e)
            self.message = GENERIC_FAILURE
            return False, self.message

        if not found:
            self.message = f"No customer with phone {phone}. Create a new customer instead."
            return False, self.message

        self._resolve(found[0])
        self.message = f"Customer: {found[0].name}"
        return True, self.message

    async def create_customer(self, name: str, phone: str, address: str) -> Tuple[bool, str]:
        if self.state != CheckoutState.CREATING_CUSTOMER:
            return False, "choose 'new customer' first"
        self.contact = ContactForm(phone=(phone or "").strip(), name=(name or "").strip(), address=(address or "").strip())
        try:
            phone = require_non_empty(phone, "phone")
            name = require_non_empty(name, "name")
            address = require_non_empty(address, "address")
        except ValueError as e:
            self.message = str(e)
            return False, self.message

        try:
            created = await self.api.create_customer(name=name, phone=phone, address=address)
        except ApiError as e:
            logger.error("customer create failed: %s", e)
            self.message = "Could not create the customer, please try again"
            return False, self.message

        self._resolve(created)
        self.message = f"Customer created: {created.name}"
        return True, self.message

    def _resolve(self, customer: Customer) -> None:
        self.found_customer = customer
        self.contact = ContactForm(phone=customer.phone, name=customer.name, address=customer.address)
        self.state = CheckoutState.CUSTOMER_RESOLVED

    # ---------------- order ----------------

    @property
    def total(self) -> float:
        return self.store.total_price()

    @property
    def can_submit(self) -> bool:
        if self.state != CheckoutState.CUSTOMER_RESOLVED:
            return False
        try:
            require_positive_number(self.total, "order total")
        except ValueError:
            return False
        return True

    def build_bill_payload(self) -> Dict[str, Any]:
        cus_id = self.found_customer.id if self.found_customer is not None else None
        return {
            "user_id": self.staff_id,
            "cus_id": cus_id if cus_id is not None else GUEST_CUSTOMER_ID,
            "items": [
                {"fruit_id": l.fruit.id, "weight": l.quantity, "price": l.fruit.price}
                for l in self.store.lines
            ],
        }

    async def place_order(self) -> Tuple[bool, str]:
        if self.state == CheckoutState.SUBMITTING:
            return False, "order is already being submitted"
        if self.state != CheckoutState.CUSTOMER_RESOLVED:
            return False, "choose a customer or continue as guest first"
        total = self.total
        try:
            require_positive_number(total, "order total")
        except ValueError as e:
            self.message = str(e)
            return False, self.message

        payload = self.build_bill_payload()
        lines = self.store.snapshot()
        self.state = CheckoutState.SUBMITTING
        self.message = ""

        customer = self.found_customer
        updated = customer
        try:
            if customer is not None and customer.id is not None:
                spent = replace(customer, money_spent=customer.money_spent + total)
                updated = await self.api.update_customer(spent)
            bill = await self.api.create_bill(payload)
        except ApiError as e:
            logger.error("order submission failed: %s", e)
            self.state = CheckoutState.CUSTOMER_RESOLVED
            self.message = GENERIC_FAILURE
            return False, self.message

        if not bill.details:
            bill = replace(
                bill,
                user_id=bill.user_id if bill.user_id is not None else payload["user_id"],
                cus_id=bill.cus_id if bill.cus_id is not None else payload["cus_id"],
                date=bill.date or datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                total_cost=bill.total_cost or total,
                details=tuple(
                    BillDetail(fruit_id=l.fruit.id, fruit_name=l.fruit.name, weight=l.quantity, price=l.fruit.price)
                    for l in lines
                ),
            )

        self.found_customer = updated
        self.bill = bill
        self.bill_id = bill.id
        self.state = CheckoutState.COMPLETE
        self.message = f"Order #{bill.id} confirmed"
        logger.info("bill #%s created, total %.2f", bill.id, total)

        self.store.clear()
        if self.on_complete is not None:
            result = self.on_complete(bill)
            if inspect.isawaitable(result):
                await result
        return True, self.message

    def summary(self) -> List[str]:
        rows = [
            f"{l.fruit.name} × {weight(l.quantity)} = {money(l.line_total)}"
            for l in self.store.lines
        ]
        rows.append(f"Total: {money(self.total)}")
        return rows
