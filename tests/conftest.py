"""
Shared fixtures.

Everything runs against the in-memory store and a fake Gemini model.
No network calls.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from mali.accounts import AccountManager
from mali.audit import AuditLogger
from mali.config import GeminiSettings
from mali.ledger import LedgerEngine
from mali.services.storage import InMemoryAuditStorage, InMemoryRecordStore


class TickingClock:
    """Returns a strictly increasing UTC timestamp on every call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self._now = start

    def __call__(self) -> datetime:
        self._now += timedelta(minutes=1)
        return self._now


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text="Keep going, you are doing well.", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return FakeResponse(self.text)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def accounts(store, audit_logger):
    return AccountManager(store, audit_logger)


@pytest.fixture
def ledger(store, audit_logger):
    return LedgerEngine(store, audit_logger, clock=TickingClock())


@pytest.fixture
def owner(accounts):
    """A registered (and logged-in) account."""
    return accounts.register("owner", "secret", "Owner")


@pytest.fixture
def fake_model():
    """Factory: fake_model(text=..., error=..., delay=...)."""
    return FakeModel


@pytest.fixture
def gemini_settings():
    return GeminiSettings(api_key="test-key", request_timeout_seconds=1.0)
