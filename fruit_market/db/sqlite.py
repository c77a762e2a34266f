from __future__ import annotations

import os
import sqlite3
from datetime import datetime
from typing import Optional

from fruit_market.config import settings


def _connect(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or settings.db_path
    if os.path.dirname(path):
        os.makedirs(os.path.dirname(path), exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Optional[str] = None) -> None:
    conn = _connect(db_path)
    try:
        with open(os.path.join(os.path.dirname(__file__), "schema.sql"), "r", encoding="utf-8") as f:
            conn.executescript(f.read())
        conn.commit()
    finally:
        conn.close()


def load_value(key: str, db_path: Optional[str] = None) -> Optional[str]:
    init_db(db_path)
    conn = _connect(db_path)
    try:
        row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return str(row["value"]) if row else None
    finally:
        conn.close()


def save_value(key: str, value: str, db_path: Optional[str] = None) -> None:
    init_db(db_path)
    conn = _connect(db_path)
    try:
        updated_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        conn.execute(
            "INSERT INTO kv_store(key, value, updated_at) VALUES(?,?,?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
            (key, value, updated_at),
        )
        conn.commit()
    finally:
        conn.close()


def delete_value(key: str, db_path: Optional[str] = None) -> None:
    init_db(db_path)
    conn = _connect(db_path)
    try:
        conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        conn.commit()
    finally:
        conn.close()
