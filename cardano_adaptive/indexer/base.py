"""Indexer contract and the explicit type → indexer mapping."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

import httpx

DEFAULT_INDEXER = "default"


@dataclass(frozen=True, slots=True)
class IndexableDApp:
    id: str
    name: str
    type: str
    website_url: str = ""
    api_endpoint: str | None = None
    contract_addresses: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PoolData:
    pool_address: str
    token0: str
    token1: str
    reserve0: str
    reserve1: str
    fee: float
    liquidity: str


@dataclass(slots=True)
class IndexResult:
    success: bool
    tvl: float | None = None
    volume_24h: float | None = None
    pools: list[PoolData] = field(default_factory=list)
    error: str | None = None


class DAppIndexer(Protocol):
    type: str

    async def index(self, dapp: IndexableDApp) -> IndexResult: ...


class HttpIndexer:
    """Shared HTTP plumbing: every request is bounded by ``timeout``."""

    type = "http"

    def __init__(self, timeout: float = 5.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport, follow_redirects=True)


def build_indexers(
    timeout: float = 5.0, transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, DAppIndexer]:
    """Construct the indexer mapping once; the scheduler receives it by reference."""
    from cardano_adaptive.indexer.dex import DexIndexer
    from cardano_adaptive.indexer.generic import GenericIndexer

    return {
        "dex": DexIndexer(timeout=timeout, transport=transport),
        DEFAULT_INDEXER: GenericIndexer(timeout=timeout, transport=transport),
    }


def indexer_for(indexers: Mapping[str, DAppIndexer], dapp_type: str) -> DAppIndexer:
    return indexers.get(dapp_type) or indexers[DEFAULT_INDEXER]
