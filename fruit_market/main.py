import asyncio
import logging
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from fruit_market.config import require_bot_settings, settings
from fruit_market.db.sqlite import init_db
from fruit_market.bot.handlers import router
from fruit_market.services.api_client import MarketApiClient
from fruit_market.services.cart import CartStore
from fruit_market.services.session import CartSession

async def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    require_bot_settings()
    init_db()

    api = MarketApiClient()
    session = CartSession(api, CartStore(), settings.staff_id)

    bot = Bot(token=settings.bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher()
    dp.include_router(router)

    try:
        await dp.start_polling(bot, session=session)
    finally:
        await session.close()
        await api.close()
        await bot.session.close()

def run() -> None:
    asyncio.run(main())

if __name__ == "__main__":
    run()
