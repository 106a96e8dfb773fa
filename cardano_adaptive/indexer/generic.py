"""Fallback indexer for dApps without on-chain pools (NFT markets, lending, staking)."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from cardano_adaptive.indexer.base import HttpIndexer, IndexableDApp, IndexResult

_STATS_PATHS = ("/stats", "/v1/stats", "/api/stats", "")
_TVL_KEYS = ("tvl", "totalValueLocked", "total_value_locked")
_VOLUME_KEYS = ("volume24h", "volume_24h", "dailyVolume")


def first_number(data: Any, keys: tuple[str, ...]) -> float | None:
    if not isinstance(data, dict):
        return None
    for key in keys:
        value = data.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)) and value:
            return float(value)
    return None


class GenericIndexer(HttpIndexer):
    type = "generic"

    async def index(self, dapp: IndexableDApp) -> IndexResult:
        logger.debug(f"[GenericIndexer] Indexing {dapp.name}")
        async with self._client() as client:
            if not await self._health_check(client, dapp):
                return IndexResult(success=False, error=f"{dapp.name} appears to be down or unreachable")

            tvl = volume = None
            if dapp.api_endpoint:
                stats = await self._fetch_stats(client, dapp)
                tvl = first_number(stats, _TVL_KEYS)
                volume = first_number(stats, _VOLUME_KEYS)

        return IndexResult(success=True, tvl=tvl, volume_24h=volume)

    async def _health_check(self, client: httpx.AsyncClient, dapp: IndexableDApp) -> bool:
        if not dapp.website_url:
            return False
        try:
            resp = await client.head(dapp.website_url)
        except httpx.HTTPError as e:
            logger.warning(f"[GenericIndexer] Health check failed for {dapp.name}: {e}")
            return False
        return resp.is_success

    async def _fetch_stats(self, client: httpx.AsyncClient, dapp: IndexableDApp) -> dict[str, Any] | None:
        base = (dapp.api_endpoint or "").rstrip("/")
        for path in _STATS_PATHS:
            try:
                resp = await client.get(f"{base}{path}")
                if resp.is_success:
                    return resp.json()
            except (httpx.HTTPError, ValueError):
                continue
        logger.warning(f"[GenericIndexer] No stats endpoint answered for {dapp.name}")
        return None
