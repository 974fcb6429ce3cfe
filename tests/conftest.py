"""Shared fixtures for the carbon tracker tests."""

import asyncio
from datetime import datetime

import pytest

from carbon_tracker.schemas.schemas import SessionMeasurement
from carbon_tracker.services.storage import KeyValueStore, MemoryStore, StorageError
from carbon_tracker.utils.carbon import calculate_emissions

FIXED_NOW = datetime(2024, 3, 15, 10, 30)

USER_QUESTION = "Can you explain how photosynthesis works in plants"
ASSISTANT_ANSWER = "Photosynthesis converts light energy into chemical energy stored in glucose."
USER_FOLLOWUP = "What role does chlorophyll play in that process"
ASSISTANT_FOLLOWUP = "Chlorophyll absorbs red and blue light and passes the energy to the reaction centre."


def conversation_html(*turns) -> str:
    """Render (user, assistant) turns the way the chat page marks them up."""
    body = []
    for user, assistant in turns:
        body.append(f'<div class="user-message">{user}</div>')
        if assistant is not None:
            body.append(f'<div class="markdown" data-message-author="assistant">{assistant}</div>')
    return f"<html><body><main>{''.join(body)}</main></body></html>"


def measurement(user_tokens: int, assistant_tokens: int, **extra) -> SessionMeasurement:
    total = user_tokens + assistant_tokens
    return SessionMeasurement(
        user_message_count=extra.pop("user_message_count", 1),
        user_tokens=user_tokens,
        assistant_tokens=assistant_tokens,
        total_tokens=total,
        carbon_emissions=calculate_emissions(total),
        **extra,
    )


class FlakyStore(KeyValueStore):
    """MemoryStore whose writes fail while `failing` is set."""

    def __init__(self):
        self.inner = MemoryStore()
        self.failing = False
        self.writes = 0

    async def get(self, key):
        return await self.inner.get(key)

    async def set_many(self, values):
        if self.failing:
            raise StorageError("disk full")
        self.writes += 1
        return await self.inner.set_many(values)

    async def items(self):
        return await self.inner.items()


class PausingStore(MemoryStore):
    """MemoryStore that, after a write lands, waits for `resume` before returning."""

    def __init__(self):
        super().__init__()
        self.written = asyncio.Event()
        self.resume = asyncio.Event()

    async def set_many(self, values):
        result = await super().set_many(values)
        self.written.set()
        await self.resume.wait()
        return result


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def flaky_store():
    return FlakyStore()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
