from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import FileResponse

from fruit_market.config import settings
from fruit_market.db.sqlite import init_db
from fruit_market.services.api_client import ApiError, MarketApiClient
from fruit_market.services.bill_pdf import generate_bill_pdf
from fruit_market.services.cart import CartStore
from fruit_market.services.session import CartSession

app = FastAPI(title="Fresh Fruit Market Kiosk")


@app.on_event("startup")
def _startup() -> None:
    if getattr(app.state, "session", None) is None:
        init_db()
        app.state.session = CartSession(MarketApiClient(), CartStore(), settings.staff_id)


@app.on_event("shutdown")
async def _shutdown() -> None:
    session = getattr(app.state, "session", None)
    if session is not None:
        await session.close()
        await session.api.close()


def get_session(request: Request) -> CartSession:
    return request.app.state.session


def _cart(session: CartSession) -> dict[str, Any]:
    store = session.store
    return {
        "open": session.is_open,
        "items": [
            {
                "fruit": l.fruit.to_dict(),
                "quantity": l.quantity,
                "line_total": round(l.line_total, settings.decimals),
                "images": session.poller.images_for(l.fruit.id),
            }
            for l in store.lines
        ],
        "total_items": store.total_item_count(),
        "total_price": round(store.total_price(), settings.decimals),
        "currency": settings.currency,
    }


def _line_or_404(session: CartSession, fruit: str):
    item = session.find_item(fruit)
    line = session.store.get_line(item.id) if item else (
        session.store.get_line(fruit) or session.store.find_by_name(fruit)
    )
    if line is None:
        raise HTTPException(status_code=404, detail=f"{fruit} is not in the cart")
    return line


# ---------------- cart ----------------

@app.get("/cart")
def cart_get(session: CartSession = Depends(get_session)):
    return _cart(session)


@app.post("/cart/open")
async def cart_open(session: CartSession = Depends(get_session)):
    ok, msg = await session.open()
    return {"ok": ok, "message": msg, "cart": _cart(session)}


@app.post("/cart/close")
async def cart_close(session: CartSession = Depends(get_session)):
    await session.close()
    return _cart(session)


@app.post("/cart/add")
async def cart_add(fruit: str = Form(...), session: CartSession = Depends(get_session)):
    if not session.catalog:
        await session.refresh_catalog()
    item = session.find_item(fruit)
    if item is None:
        raise HTTPException(status_code=404, detail=f"unknown fruit: {fruit}")
    session.store.add_item(item)
    return _cart(session)


@app.post("/cart/remove")
def cart_remove(fruit: str = Form(...), session: CartSession = Depends(get_session)):
    line = _line_or_404(session, fruit)
    session.store.remove_item(line.fruit.id)
    return _cart(session)


@app.post("/cart/quantity")
def cart_quantity(
    fruit: str = Form(...),
    quantity: str = Form(""),
    session: CartSession = Depends(get_session),
):
    line = _line_or_404(session, fruit)
    session.store.set_quantity(line.fruit.id, quantity)
    return _cart(session)


@app.post("/cart/clear")
def cart_clear(session: CartSession = Depends(get_session)):
    session.store.clear()
    session.poller.forget_images()
    return _cart(session)


# ---------------- bills ----------------

@app.get("/bills/{bill_id}/pdf", response_class=FileResponse)
async def bill_pdf(bill_id: int, session: CartSession = Depends(get_session)):
    try:
        bill = await session.api.get_bill(bill_id)
    except (ApiError, ValueError):
        raise HTTPException(status_code=404, detail=f"bill #{bill_id} not found")
    p = Path(generate_bill_pdf(bill))
    return FileResponse(str(p), filename=p.name)
