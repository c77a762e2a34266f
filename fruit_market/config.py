from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]  # .../fruit_market project root
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float) -> float:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v.replace(",", "."))


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    api_timeout: float
    bot_token: str
    staff_id: int
    db_path: str
    export_dir: str
    poll_interval: float
    manual_pin_polls: int
    currency: str
    decimals: int
    weight_decimals: int


settings = Settings(
    api_base_url=_get_env("API_BASE_URL", "FRUIT_API_URL", default="http://localhost:8000") or "",
    api_timeout=_get_float("API_TIMEOUT", default=10.0),
    bot_token=_get_env("BOT_TOKEN", "TELEGRAM_BOT_TOKEN", default="") or "",
    staff_id=_get_int("STAFF_ID", "ADMIN_ID", "ADMIN_TG_ID", default=0) or 0,
    db_path=_get_path("DB_PATH", "DATABASE_PATH", default=str(ROOT_DIR / "data" / "market.db")),
    export_dir=_get_path("EXPORT_DIR", default=str(ROOT_DIR / "exports")),
    poll_interval=_get_float("POLL_INTERVAL", default=2.0),
    manual_pin_polls=_get_int("MANUAL_PIN_POLLS", default=3) or 0,
    currency=_get_env("CURRENCY", default="USD") or "USD",
    decimals=_get_int("DECIMALS", default=2),
    weight_decimals=_get_int("WEIGHT_DECIMALS", default=3),
)


def require_bot_settings() -> None:
    if not settings.bot_token:
        raise RuntimeError("BOT_TOKEN is empty. Set BOT_TOKEN in .env")
    if not settings.staff_id:
        raise RuntimeError("STAFF_ID is empty. Set STAFF_ID (or ADMIN_ID) in .env")
