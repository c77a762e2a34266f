import logging

from aiogram import Router, html
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import FSInputFile, Message, ReplyKeyboardRemove

from fruit_market.bot.keyboards import (
    BTN_BACK,
    BTN_CREATE,
    BTN_FIND,
    BTN_GUEST,
    BTN_PLACE,
    confirm_kb,
    customer_mode_kb,
    main_kb,
)
from fruit_market.bot.states import CheckoutForm
from fruit_market.config import settings
from fruit_market.services.api_client import ApiError
from fruit_market.services.bill_pdf import generate_bill_pdf
from fruit_market.services.checkout import CheckoutFlow
from fruit_market.services.session import CartSession
from fruit_market.utils.formatters import money, weight

logger = logging.getLogger(__name__)

router = Router()


def _is_staff(message: Message) -> bool:
    try:
        return int(message.from_user.id) == int(settings.staff_id)
    except (AttributeError, TypeError, ValueError):
        return False


def _args(message: Message) -> str:
    parts = (message.text or "").split(maxsplit=1)
    return parts[1].strip() if len(parts) > 1 else ""


def _cart_text(session: CartSession) -> str:
    store = session.store
    if not len(store):
        return "🧺 Cart is empty"
    lines = [f"<b>🧺 Cart ({store.total_item_count()})</b>"]
    for l in store.lines:
        pin = " 📌" if store.pinned(l.fruit.id) else ""
        lines.append(
            f"• {html.quote(l.fruit.name)} — {weight(l.quantity)} × {money(l.fruit.price)}"
            f" = {money(l.line_total)}{pin}"
        )
    lines.append("")
    lines.append(f"<b>Total: {money(store.total_price())}</b>")
    return "\n".join(lines)


def _flow(session: CartSession) -> CheckoutFlow | None:
    return session.checkout


@router.message(Command("start"))
async def cmd_start(message: Message):
    if not _is_staff(message):
        return
    await message.answer("🍎 Fresh Fruit Market cashier is ready", reply_markup=main_kb())


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext, session: CartSession):
    if not _is_staff(message):
        return
    session.cancel_checkout()
    await state.clear()
    await message.answer("❎ Cancelled.", reply_markup=main_kb())


@router.message(Command("help"))
async def cmd_help(message: Message):
    if not _is_staff(message):
        return

    text = (
        "<b>Fresh Fruit Market — commands</b>\n\n"
        "<b>Cart</b>\n"
        "/cart — open the cart (starts the scale/camera polling) and show it\n"
        "/add FRUIT — add a fruit (0 kg until weighed)\n"
        "/weight FRUIT KG — set the weight by hand\n"
        "/weigh FRUIT — take the weight from the scale\n"
        "/remove FRUIT — remove a line\n"
        "/clear — empty the cart\n"
        "/close — close the cart (stops polling)\n\n"
        "<b>Sale</b>\n"
        "/checkout — customer + place the order\n"
        "/cancel — leave the checkout\n"
        "/bills — last bills\n"
        "/bill ID — bill PDF\n\n"
        "<b>Other</b>\n"
        "/fruits — catalog\n"
        "/ping — check\n"
    )
    await message.answer(text)


@router.message(Command("ping"))
async def cmd_ping(message: Message):
    if not _is_staff(message):
        return
    await message.answer("pong ✅")


@router.message(Command("fruits"))
async def cmd_fruits(message: Message, session: CartSession):
    if not _is_staff(message):
        return
    ok, err = await session.refresh_catalog()
    if not ok:
        await message.answer(f"❌ {err}")
        return
    if not session.catalog:
        await message.answer("No fruits in the catalog yet.")
        return
    lines = ["<b>Fruits:</b>"]
    for item in session.catalog.values():
        lines.append(f"• {html.quote(item.name)} — {money(item.price)}/kg (stock {item.quantity:g})")
    await message.answer("\n".join(lines))


# ---------------- cart ----------------

@router.message(Command("cart"))
async def cmd_cart(message: Message, session: CartSession):
    if not _is_staff(message):
        return
    if not session.is_open:
        ok, msg = await session.open()
        if not ok:
            await message.answer(f"⚠️ Cart opened, but {msg}")
    await message.answer(_cart_text(session))


@router.message(Command("add"))
async def cmd_add(message: Message, session: CartSession):
    if not _is_staff(message):
        return

    name = _args(message)
    if not name:
        await message.answer("Format: /add FRUIT")
        return
    if not session.catalog:
        await session.refresh_catalog()

    item = session.find_item(name)
    if item is None:
        await message.answer(f"❌ Unknown fruit: {html.quote(name)}")
        return

    if session.store.add_item(item):
        await message.answer(f"✅ Added: {html.quote(item.name)} (weigh it: /weigh {html.quote(item.name)})")
    else:
        await message.answer(f"ℹ️ {html.quote(item.name)} is already in the cart")


@router.message(Command("remove"))
async def cmd_remove(message: Message, session: CartSession):
    if not _is_staff(message):
        return

    name = _args(message)
    item = session.find_item(name)
    line = session.store.find_by_name(item.name if item else name)
    if line is None:
        await message.answer("Format: /remove FRUIT (must be in the cart)")
        return
    session.store.remove_item(line.fruit.id)
    await message.answer(f"✅ Removed: {html.quote(line.fruit.name)}")


@router.message(Command("weight"))
async def cmd_weight(message: Message, session: CartSession):
    if not _is_staff(message):
        return

    parts = _args(message).rsplit(maxsplit=1)
    if len(parts) != 2:
        await message.answer("Format: /weight FRUIT KG")
        return

    name, kg = parts
    item = session.find_item(name)
    line = session.store.find_by_name(item.name if item else name)
    if line is None:
        await message.answer(f"❌ {html.quote(name)} is not in the cart")
        return

    session.store.set_quantity(line.fruit.id, kg)
    line = session.store.get_line(line.fruit.id)
    await message.answer(f"✅ {html.quote(line.fruit.name)}: {weight(line.quantity)}")


@router.message(Command("weigh"))
async def cmd_weigh(message: Message, session: CartSession):
    if not _is_staff(message):
        return

    name = _args(message)
    item = session.find_item(name)
    line = session.store.find_by_name(item.name if item else name)
    if line is None:
        await message.answer("Format: /weigh FRUIT (must be in the cart)")
        return

    ok, text = await session.poller.weigh(line.fruit.id)
    await message.answer(f"⚖️ {html.quote(text)}" if ok else f"❌ {text}")


@router.message(Command("clear"))
async def cmd_clear(message: Message, session: CartSession):
    if not _is_staff(message):
        return
    session.store.clear()
    session.poller.forget_images()
    await message.answer("🧺 Cart cleared")


@router.message(Command("close"))
async def cmd_close(message: Message, state: FSMContext, session: CartSession):
    if not _is_staff(message):
        return
    await session.close()
    await state.clear()
    await message.answer("Cart closed, polling stopped.", reply_markup=main_kb())


# ---------------- bills ----------------

@router.message(Command("bills"))
async def cmd_bills(message: Message, session: CartSession):
    if not _is_staff(message):
        return
    try:
        bills = await session.api.list_bills()
    except ApiError as e:
        logger.error("bill list failed: %s", e)
        await message.answer("❌ Could not load bills")
        return
    if not bills:
        await message.answer("No bills yet.")
        return
    lines = ["<b>Last bills:</b>"]
    for b in bills[-10:]:
        lines.append(f"• #{b.id} {b.date} — {money(b.total_cost)} (customer {b.cus_id})")
    await message.answer("\n".join(lines))


@router.message(Command("bill"))
async def cmd_bill(message: Message, session: CartSession):
    if not _is_staff(message):
        return
    raw = _args(message)
    if not raw.isdigit():
        await message.answer("Format: /bill ID")
        return
    try:
        bill = await session.api.get_bill(int(raw))
    except (ApiError, ValueError) as e:
        logger.error("bill fetch failed: %s", e)
        await message.answer(f"❌ Bill #{raw} not found")
        return
    await message.answer_document(FSInputFile(generate_bill_pdf(bill)))


# ---------------- checkout ----------------

@router.message(Command("checkout"))
async def cmd_checkout(message: Message, state: FSMContext, session: CartSession):
    if not _is_staff(message):
        return
    if not len(session.store):
        await message.answer("🧺 Cart is empty")
        return

    flow = session.begin_checkout()
    flow.back()
    await state.set_state(CheckoutForm.choosing_mode)
    await message.answer(
        _cart_text(session) + "\n\nWho is buying?\nCancel: /cancel",
        reply_markup=customer_mode_kb(),
    )


@router.message(CheckoutForm.choosing_mode)
async def checkout_mode(message: Message, state: FSMContext, session: CartSession):
    if not _is_staff(message):
        return
    flow = _flow(session)
    if flow is None:
        await state.clear()
        await message.answer("No checkout in progress. Start: /checkout", reply_markup=main_kb())
        return

    choice = (message.text or "").strip()
    if choice == BTN_FIND:
        flow.choose_find()
        await state.set_state(CheckoutForm.waiting_phone)
        await message.answer("Customer phone:", reply_markup=ReplyKeyboardRemove())
    elif choice == BTN_CREATE:
        flow.choose_create()
        await state.set_state(CheckoutForm.waiting_new_phone)
        await message.answer("1/3) Phone of the new customer:", reply_markup=ReplyKeyboardRemove())
    elif choice == BTN_GUEST:
        flow.continue_as_guest()
        await _ask_confirm(message, state, session)
    else:
        await message.answer("Pick one of the buttons. Cancel: /cancel", reply_markup=customer_mode_kb())


async def _ask_confirm(message: Message, state: FSMContext, session: CartSession) -> None:
    flow = _flow(session)
    await state.set_state(CheckoutForm.confirming)
    who = html.quote(flow.found_customer.name) if flow.found_customer else "guest"
    text = "\n".join([f"<b>Customer:</b> {who}", ""] + [html.quote(r) for r in flow.summary()])
    if not flow.can_submit:
        text += "\n\n⚠️ Total must be greater than 0 — weigh the fruit first (/cancel, then /weigh)."
    await message.answer(text, reply_markup=confirm_kb())


@router.message(CheckoutForm.waiting_phone)
async def checkout_phone(message: Message, state: FSMContext, session: CartSession):
    if not _is_staff(message):
        return
    flow = _flow(session)
    if flow is None:
        await state.clear()
        return

    ok, text = await flow.find_customer(message.text or "")
    if not ok:
        await message.answer(f"❌ {html.quote(text)}\nTry another phone, or /cancel and pick “new customer”.")
        return
    await _ask_confirm(message, state, session)


@router.message(CheckoutForm.waiting_new_phone)
async def checkout_new_phone(message: Message, state: FSMContext):
    if not _is_staff(message):
        return
    phone = (message.text or "").strip()
    if not phone or phone.startswith("/"):
        await message.answer("Enter the phone as text. Cancel: /cancel")
        return
    await state.update_data(phone=phone)
    await state.set_state(CheckoutForm.waiting_new_name)
    await message.answer("2/3) Name:")


@router.message(CheckoutForm.waiting_new_name)
async def checkout_new_name(message: Message, state: FSMContext):
    if not _is_staff(message):
        return
    name = (message.text or "").strip()
    if not name or name.startswith("/"):
        await message.answer("Enter the name as text. Cancel: /cancel")
        return
    await state.update_data(name=name)
    await state.set_state(CheckoutForm.waiting_new_address)
    await message.answer("3/3) Address:")


@router.message(CheckoutForm.waiting_new_address)
async def checkout_new_address(message: Message, state: FSMContext, session: CartSession):
    if not _is_staff(message):
        return
    flow = _flow(session)
    if flow is None:
        await state.clear()
        return

    data = await state.get_data()
    ok, text = await flow.create_customer(
        name=str(data.get("name", "")),
        phone=str(data.get("phone", "")),
        address=message.text or "",
    )
    if not ok:
        await message.answer(f"❌ {html.quote(text)}\nAddress again, or /cancel")
        return
    await _ask_confirm(message, state, session)


@router.message(CheckoutForm.confirming)
async def checkout_confirm(message: Message, state: FSMContext, session: CartSession):
    if not _is_staff(message):
        return
    flow = _flow(session)
    if flow is None:
        await state.clear()
        return

    choice = (message.text or "").strip()
    if choice == BTN_BACK:
        flow.back()
        await state.set_state(CheckoutForm.choosing_mode)
        await message.answer("Who is buying?", reply_markup=customer_mode_kb())
        return
    if choice != BTN_PLACE:
        await message.answer("Press “Place order” or /cancel", reply_markup=confirm_kb())
        return

    ok, text = await flow.place_order()
    if not ok:
        await message.answer(f"❌ {html.quote(text)}")
        return

    await state.clear()
    await message.answer(
        f"✅ {html.quote(text)}\nTotal: {money(flow.bill.total_cost)}",
        reply_markup=main_kb(),
    )
    try:
        pdf_path = generate_bill_pdf(flow.bill, flow.found_customer)
        await message.answer_document(FSInputFile(pdf_path))
    except Exception as e:
        logger.exception("bill pdf failed")
        await message.answer(f"⚠️ Bill created, but the PDF was not generated: {e}")
