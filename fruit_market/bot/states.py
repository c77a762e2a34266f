from aiogram.fsm.state import State, StatesGroup


class CheckoutForm(StatesGroup):
    choosing_mode = State()
    waiting_phone = State()
    waiting_new_phone = State()
    waiting_new_name = State()
    waiting_new_address = State()
    confirming = State()
