"""Periodic indexer job over all active dApps."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardano_adaptive.indexer.base import DAppIndexer, IndexableDApp, indexer_for
from cardano_adaptive.storage.models import DApp
from cardano_adaptive.storage.repository import DAppRepo, PoolRepo


@dataclass(frozen=True, slots=True)
class IndexRunSummary:
    indexed: int
    failed: int
    duration_ms: int

    def to_wire(self) -> dict[str, Any]:
        return {"indexed": self.indexed, "failed": self.failed, "durationMs": self.duration_ms}


def _minutes_since(ts: datetime | None, now: datetime) -> int | None:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return int((now - ts).total_seconds() // 60)


def _indexable(dapp: DApp) -> IndexableDApp:
    return IndexableDApp(
        id=dapp.id,
        name=dapp.name,
        type=dapp.type.value,
        website_url=dapp.website_url,
        api_endpoint=dapp.api_endpoint,
        contract_addresses=tuple(dapp.contract_addresses or ()),
    )


class IndexerScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        indexers: Mapping[str, DAppIndexer],
        interval_minutes: int = 15,
    ) -> None:
        self._session_factory = session_factory
        self._indexers = indexers
        self._interval = interval_minutes * 60

    async def _index_one(self, session: AsyncSession, dapp: DApp) -> bool:
        indexer = indexer_for(self._indexers, dapp.type.value)
        result = await indexer.index(_indexable(dapp))
        if not result.success:
            logger.warning(f"Indexer: {dapp.name} failed: {result.error}")
            return False

        await DAppRepo(session).update_metrics(dapp.id, result.tvl, result.volume_24h)
        pools = PoolRepo(session)
        for pool in result.pools:
            await pools.upsert(
                dapp_id=dapp.id,
                pool_address=pool.pool_address,
                token0=pool.token0,
                token1=pool.token1,
                reserve0=pool.reserve0,
                reserve1=pool.reserve1,
                fee=pool.fee,
                liquidity=pool.liquidity,
            )
        logger.info(f"Indexer: {dapp.name} indexed ({len(result.pools)} pools)")
        return True

    async def run_once(self) -> IndexRunSummary:
        started = time.monotonic()
        indexed = failed = 0
        async with self._session_factory() as session:
            dapps = await DAppRepo(session).list_active()
            logger.info(f"Indexer: {len(dapps)} active dApps to index")
            for dapp in dapps:
                try:
                    ok = await self._index_one(session, dapp)
                except Exception as e:
                    # one broken dApp must not stop the sweep
                    logger.error(f"Indexer: error indexing {dapp.name}: {e}")
                    ok = False
                if ok:
                    indexed += 1
                else:
                    failed += 1
            await session.commit()

        summary = IndexRunSummary(indexed, failed, int((time.monotonic() - started) * 1000))
        logger.info(f"Indexer run complete in {summary.duration_ms}ms: {indexed} ok, {failed} failed")
        return summary

    async def status(self) -> dict[str, Any]:
        now = datetime.now(tz=UTC)
        async with self._session_factory() as session:
            dapps = await DAppRepo(session).list_active()
        return {
            "totalDApps": len(dapps),
            "dapps": [
                {
                    "id": d.id,
                    "name": d.name,
                    "type": d.type.value,
                    "tvl": d.tvl,
                    "volume24h": d.volume_24h,
                    "lastIndexed": d.last_indexed.isoformat() if d.last_indexed else None,
                    "lastIndexedMinutesAgo": _minutes_since(d.last_indexed, now),
                }
                for d in dapps
            ],
        }

    async def run_forever(self, stop: asyncio.Event | None = None) -> None:
        stop = stop or asyncio.Event()
        logger.info(f"Indexer scheduler started (every {self._interval // 60} min)")
        while not stop.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval)
            except TimeoutError:
                continue
