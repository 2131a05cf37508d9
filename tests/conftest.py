# tests/conftest.py
from __future__ import annotations
import asyncio
import json
import threading
import types
from datetime import datetime, timedelta, timezone

import pytest
import requests

from hostsuffix.cache import SuffixListCache
from hostsuffix.config import Config
from hostsuffix.database import SuffixDatabase
from hostsuffix.source import DATABASE_URL

SUFFIX_LIST = """// ===BEGIN ICANN DOMAINS===
// com : https://en.wikipedia.org/wiki/.com
com
net
org

// uk
uk
co.uk

# hash comments are skipped too
// ck
*.ck
!www.ck

// jp
jp
*.kawasaki.jp
!city.kawasaki.jp

// ===BEGIN PRIVATE DOMAINS===
blogspot.com
"""


@pytest.fixture
def suffix_list_text() -> str:
    return SUFFIX_LIST


@pytest.fixture
def tmp_config(tmp_path) -> Config:
    return Config.from_dict({
        "suffix_list": {"url": DATABASE_URL, "request_timeout_seconds": 5, "ttl_hours": 24},
        "cache": {"path": str(tmp_path / "psl-cache.json")},
        "parser": {"favor_custom": False, "strategy": "greedy", "custom_suffixes": []},
        "logging": {"level": "DEBUG", "console": True},
    })


class FakeClock:
    def __init__(self, now: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakeSource:
    """Stands in for SuffixListSource and counts fetches."""
    def __init__(self, text: str = SUFFIX_LIST, delay: float = 0.0, error: Exception | None = None):
        self.url = DATABASE_URL
        self.text = text
        self.delay = delay
        self.error = error
        self.calls = 0
        self._lock = threading.Lock()

    def fetch(self) -> str:
        with self._lock:
            self.calls += 1
        if self.delay:
            threading.Event().wait(self.delay)
        if self.error:
            raise self.error
        return self.text

    async def fetch_async(self, timeout=None) -> str:
        self.calls += 1
        await asyncio.sleep(self.delay or 0.01)
        if self.error:
            raise self.error
        return self.text


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def make_source():
    return FakeSource


@pytest.fixture
def cache(tmp_path) -> SuffixListCache:
    return SuffixListCache(tmp_path / "psl-cache.json")


@pytest.fixture
def database(cache, fake_source, clock) -> SuffixDatabase:
    return SuffixDatabase(cache=cache, source=fake_source, clock=clock)


# --- Simple fake response object for requests.get ---
class FakeResp:
    def __init__(self, status=200, text="", headers=None):
        self.status_code = status
        self.text = text
        self.headers = headers or {}

    def raise_for_status(self):
        if not (200 <= self.status_code < 300):
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        return json.loads(self.text)


@pytest.fixture
def fake_requests(monkeypatch):
    """
    Registry-based stub for requests.get; records every call.
    """
    registry_get = {}
    calls = []

    def _get(url, *args, **kwargs):
        calls.append((url, kwargs))
        resp = registry_get.get(url, FakeResp(404, "not found"))
        if isinstance(resp, Exception):
            raise resp
        return resp

    def register_get(url, resp):
        registry_get[url] = resp

    monkeypatch.setattr("requests.get", _get)
    return types.SimpleNamespace(register_get=register_get, calls=calls, FakeResp=FakeResp)
