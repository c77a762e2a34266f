from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

ItemId = Union[str, int]


def _float(v: Any, default: float = 0.0) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class CatalogItem:
    id: ItemId
    name: str
    price: float
    image: str = ""
    description: str = ""
    category: str = ""
    quantity: float = 0.0  # stock left, owned by the catalog service

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CatalogItem":
        return cls(
            id=data.get("id", data.get("fruit_id")),
            name=str(data.get("name", "")),
            price=_float(data.get("price")),
            image=str(data.get("image") or data.get("image_url") or ""),
            description=str(data.get("description") or ""),
            category=str(data.get("category") or ""),
            quantity=_float(data.get("quantity")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "image": self.image,
            "description": self.description,
            "category": self.category,
            "quantity": self.quantity,
        }


@dataclass
class CartLine:
    fruit: CatalogItem
    quantity: float = 0.0  # kg

    @property
    def line_total(self) -> float:
        return self.fruit.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {"fruit": self.fruit.to_dict(), "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartLine":
        return cls(fruit=CatalogItem.from_api(data["fruit"]), quantity=_float(data.get("quantity")))


@dataclass
class Customer:
    id: Optional[int]
    name: str
    phone: str
    address: str = ""
    money_spent: float = 0.0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Customer":
        cid = data.get("cus_id", data.get("id"))
        return cls(
            id=int(cid) if cid is not None else None,
            name=str(data.get("name") or ""),
            phone=str(data.get("phone") or ""),
            address=str(data.get("address") or ""),
            money_spent=_float(data.get("moneySpent", data.get("money_spent"))),
        )

    def to_api(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "moneySpent": self.money_spent,
        }
        if self.id is not None:
            body["cus_id"] = self.id
        return body


@dataclass(frozen=True)
class BillDetail:
    fruit_id: ItemId
    fruit_name: str
    weight: float
    price: float

    @property
    def line_total(self) -> float:
        return self.weight * self.price

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "BillDetail":
        return cls(
            fruit_id=data.get("fruit_id"),
            fruit_name=str(data.get("fruit_name") or ""),
            weight=_float(data.get("weight")),
            price=_float(data.get("price")),
        )


@dataclass(frozen=True)
class Bill:
    id: int
    user_id: Optional[int] = None
    cus_id: Optional[int] = None
    date: str = ""
    total_cost: float = 0.0
    details: Tuple[BillDetail, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Bill":
        bid = data.get("id", data.get("bill_id"))
        if bid is None:
            raise ValueError("bill response has no id")
        raw_details: List[Dict[str, Any]] = data.get("bill_details") or data.get("items") or []
        details = tuple(BillDetail.from_api(d) for d in raw_details)
        total = data.get("total_cost")
        return cls(
            id=int(bid),
            user_id=data.get("user_id"),
            cus_id=data.get("cus_id"),
            date=str(data.get("date") or data.get("created_at") or ""),
            total_cost=_float(total) if total is not None else sum(d.line_total for d in details),
            details=details,
        )
