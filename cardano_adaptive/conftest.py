"""Shared fixtures: a throwaway registry database and scripted collaborators."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from cardano_adaptive.providers.base import LLMProvider, LLMResponse
from cardano_adaptive.seed import seed_registry
from cardano_adaptive.storage.database import create_all_tables


class ScriptedProvider(LLMProvider):
    """Returns canned completions in order and records every prompt it saw."""

    def __init__(self, *replies: str, finish_reason: str = "stop") -> None:
        super().__init__(api_key="test-key")
        self._replies = list(replies)
        self._finish_reason = finish_reason
        self.calls: list[list[dict[str, Any]]] = []

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
    ) -> LLMResponse:
        self.calls.append(messages)
        content = self._replies.pop(0) if self._replies else ""
        return LLMResponse(content=content, finish_reason=self._finish_reason)

    def get_default_model(self) -> str:
        return "scripted"


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    # file-backed so concurrent sessions get their own connections
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
    await create_all_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def seeded_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> async_sessionmaker[AsyncSession]:
    async with session_factory() as session:
        await seed_registry(session)
        await session.commit()
    return session_factory
