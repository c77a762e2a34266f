from aiogram.types import ReplyKeyboardMarkup, KeyboardButton

BTN_FIND = "🔎 Find customer"
BTN_CREATE = "➕ New customer"
BTN_GUEST = "👤 Guest"
BTN_PLACE = "✅ Place order"
BTN_BACK = "⬅️ Back"


def main_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text="/cart"), KeyboardButton(text="/fruits")],
            [KeyboardButton(text="/checkout"), KeyboardButton(text="/bills")],
            [KeyboardButton(text="/help"), KeyboardButton(text="/close")],
        ],
        resize_keyboard=True,
    )


def customer_mode_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=BTN_FIND), KeyboardButton(text=BTN_CREATE)],
            [KeyboardButton(text=BTN_GUEST)],
            [KeyboardButton(text="/cancel")],
        ],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def confirm_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=BTN_PLACE)],
            [KeyboardButton(text=BTN_BACK), KeyboardButton(text="/cancel")],
        ],
        resize_keyboard=True,
    )
