import asyncio

import pytest

from erphub.state.session_state import (
    CurrencyStore,
    JsonFileStorage,
    MemoryStorage,
    NotificationPoller,
    SessionState,
    ThemeStore,
)


def test_theme_is_stored_per_user():
    storage = MemoryStorage()
    a = ThemeStore(storage, "a")
    a.set_mode("dark")
    a.set_primary_color("teal")

    reloaded = ThemeStore(storage, "a")
    reloaded.load()
    other = ThemeStore(storage, "b")
    other.load()

    assert (reloaded.mode, reloaded.primary_color) == ("dark", "teal")
    assert (other.mode, other.primary_color) == ("light", "blue")
    assert reloaded.palette()["main"] == "#0891b2"


def test_theme_rejects_unknown_values():
    theme = ThemeStore(MemoryStorage(), "a")
    with pytest.raises(ValueError):
        theme.set_primary_color("chartreuse")
    with pytest.raises(ValueError):
        theme.set_mode("sepia")
    assert theme.toggle_mode() == "dark"


def test_currency_format_and_validation():
    store = CurrencyStore(MemoryStorage(), "a")
    assert store.format(1234.5) == "$1,234.50"
    store.set_currency("eur")
    assert store.format(10) == "€10.00"
    with pytest.raises(ValueError):
        store.set_currency("BTC")


def test_json_file_storage_persists(tmp_path):
    path = str(tmp_path / "prefs" / "state.json")
    CurrencyStore(JsonFileStorage(path), "a").set_currency("GBP")

    store = CurrencyStore(JsonFileStorage(path), "a")
    store.load()
    assert store.currency == "GBP"


async def test_poller_rings_on_increase_and_clears_at_zero():
    counts = iter([0, 2, 2, 0])
    poller = NotificationPoller(lambda: next(counts), interval=0)

    assert await poller.poll_once() == 0
    assert not poller.is_ringing
    await poller.poll_once()
    assert poller.is_ringing and poller.unread_count == 2
    await poller.poll_once()
    assert poller.is_ringing
    await poller.poll_once()
    assert not poller.is_ringing and poller.unread_count == 0


async def test_poller_keeps_last_count_when_fetch_fails():
    calls = []

    async def fetch():
        calls.append(1)
        if len(calls) == 2:
            raise ConnectionError("offline")
        return 3

    poller = NotificationPoller(fetch, interval=0)
    await poller.poll_once()
    assert await poller.poll_once() == 3
    assert poller.unread_count == 3


async def test_session_state_starts_and_stops_polling():
    storage = MemoryStorage({"currency_user_u1": "AED"})
    session = SessionState("u1", storage, lambda: 1, poll_interval=0.01)

    await session.start()
    await asyncio.sleep(0.05)
    assert session.notifications.running
    assert session.notifications.unread_count == 1
    assert session.currency.currency == "AED"

    await session.close()
    assert not session.notifications.running
    assert not session.started
