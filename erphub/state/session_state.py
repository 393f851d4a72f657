"""
Per-session client state: theme and currency preferences plus notification polling.

A SessionState is created at login and closed at logout; nothing here is a
module-level singleton. Persistence goes through an injected StorageAdapter.
"""
import asyncio
import inspect
import json
import os
import threading
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import structlog

from ..config import settings

logger = structlog.get_logger(__name__)


class StorageAdapter:
    """Key/value persistence for preferences. Values must be JSON-serialisable."""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(StorageAdapter):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage(StorageAdapter):
    """All keys in a single JSON object on disk; rewritten on every change."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError:
                logger.warning("state_file_corrupt", path=self.path)
                return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


# Theme

PALETTE: Dict[str, Dict[str, str]] = {
    "blue": {"main": "#2563eb", "light": "#3b82f6", "dark": "#1d4ed8"},
    "purple": {"main": "#7c3aed", "light": "#8b5cf6", "dark": "#6d28d9"},
    "green": {"main": "#16a34a", "light": "#22c55e", "dark": "#15803d"},
    "red": {"main": "#dc2626", "light": "#ef4444", "dark": "#b91c1c"},
    "orange": {"main": "#ea580c", "light": "#fb923c", "dark": "#c2410c"},
    "teal": {"main": "#0891b2", "light": "#06b6d4", "dark": "#0e7490"},
    "pink": {"main": "#db2777", "light": "#ec4899", "dark": "#be185d"},
    "indigo": {"main": "#4f46e5", "light": "#6366f1", "dark": "#4338ca"},
    "cyan": {"main": "#06b6d4", "light": "#22d3ee", "dark": "#0891b2"},
    "amber": {"main": "#f59e0b", "light": "#fbbf24", "dark": "#d97706"},
    "lime": {"main": "#84cc16", "light": "#a3e635", "dark": "#65a30d"},
    "emerald": {"main": "#10b981", "light": "#34d399", "dark": "#059669"},
    "violet": {"main": "#8b5cf6", "light": "#a78bfa", "dark": "#7c3aed"},
    "fuchsia": {"main": "#d946ef", "light": "#e879f9", "dark": "#c026d3"},
    "rose": {"main": "#f43f5e", "light": "#fb7185", "dark": "#e11d48"},
    "sky": {"main": "#0ea5e9", "light": "#38bdf8", "dark": "#0284c7"},
    "slate": {"main": "#64748b", "light": "#94a3b8", "dark": "#475569"},
}
THEME_MODES = ("light", "dark")


class ThemeStore:
    def __init__(self, storage: StorageAdapter, user_id: Optional[str] = None):
        self.storage = storage
        self.user_id = user_id
        self.mode = "light"
        self.primary_color = "blue"
        self.sidebar_color: Optional[str] = None

    @property
    def key(self) -> str:
        return f"theme_user_{self.user_id}" if self.user_id else "theme"

    def load(self) -> None:
        stored = self.storage.get(self.key) or {}
        mode = stored.get("mode")
        color = stored.get("primary_color")
        self.mode = mode if mode in THEME_MODES else "light"
        self.primary_color = color if color in PALETTE else "blue"
        self.sidebar_color = stored.get("sidebar_color")

    def _save(self) -> None:
        self.storage.set(self.key, {
            "mode": self.mode,
            "primary_color": self.primary_color,
            "sidebar_color": self.sidebar_color,
        })

    def set_mode(self, mode: str) -> None:
        if mode not in THEME_MODES:
            raise ValueError(f"Unknown theme mode '{mode}'")
        self.mode = mode
        self._save()

    def toggle_mode(self) -> str:
        self.set_mode("dark" if self.mode == "light" else "light")
        return self.mode

    def set_primary_color(self, color: str) -> None:
        if color not in PALETTE:
            raise ValueError(f"Unknown primary colour '{color}'")
        self.primary_color = color
        self._save()

    def set_sidebar_color(self, color: Optional[str]) -> None:
        self.sidebar_color = color
        self._save()

    def palette(self) -> Dict[str, str]:
        return dict(PALETTE[self.primary_color])


# Currency

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "SAR": "﷼",
    "AED": "د.إ",
    "EGP": "E£",
    "JPY": "¥",
    "CNY": "¥",
    "XAF": "FCFA",
    "GHS": "₵",
}


class CurrencyStore:
    def __init__(self, storage: StorageAdapter, user_id: Optional[str] = None):
        self.storage = storage
        self.user_id = user_id
        self.currency = "USD"

    @property
    def key(self) -> str:
        return f"currency_user_{self.user_id}" if self.user_id else "currency"

    @property
    def symbol(self) -> str:
        return CURRENCY_SYMBOLS[self.currency]

    def load(self) -> None:
        stored = self.storage.get(self.key)
        self.currency = stored if stored in CURRENCY_SYMBOLS else "USD"

    def set_currency(self, code: str) -> None:
        code = (code or "").upper()
        if code not in CURRENCY_SYMBOLS:
            raise ValueError(f"Unknown currency '{code}'")
        self.currency = code
        self.storage.set(self.key, code)

    def format(self, amount: float) -> str:
        return f"{self.symbol}{amount:,.2f}"


# Notifications

UnreadFetcher = Callable[[], Union[int, Awaitable[int]]]


class NotificationPoller:
    """
    Poll an unread-count source on a fixed interval.

    Each poll is independent; a failed poll is logged and the previous count kept.
    `is_ringing` turns on when the count increases and off when it reaches zero.
    """

    def __init__(self, fetch_unread: UnreadFetcher, interval: Optional[float] = None):
        self.fetch_unread = fetch_unread
        self.interval = settings.notification_poll_seconds if interval is None else interval
        self.unread_count = 0
        self.is_ringing = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> int:
        try:
            result = self.fetch_unread()
            if inspect.isawaitable(result):
                result = await result
            count = int(result)
        except Exception as e:
            logger.warning("notification_poll_failed", error=str(e))
            return self.unread_count
        if count > self.unread_count:
            self.is_ringing = True
        elif count == 0:
            self.is_ringing = False
        self.unread_count = count
        return count

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def acknowledge(self) -> None:
        self.is_ringing = False


class SessionState:
    """State for one logged-in user, from login (start) to logout (close)."""

    def __init__(self, user_id: str, storage: StorageAdapter, fetch_unread: UnreadFetcher,
                 poll_interval: Optional[float] = None):
        self.user_id = user_id
        self.storage = storage
        self.theme = ThemeStore(storage, user_id)
        self.currency = CurrencyStore(storage, user_id)
        self.notifications = NotificationPoller(fetch_unread, poll_interval)
        self.started = False

    async def start(self) -> None:
        self.theme.load()
        self.currency.load()
        self.notifications.start()
        self.started = True
        logger.info("session_started", user_id=self.user_id)

    async def close(self) -> None:
        await self.notifications.stop()
        self.started = False
        logger.info("session_closed", user_id=self.user_id)
