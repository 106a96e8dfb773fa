"""DEX indexer.

Volume comes from the DEX API when it has one.  Pool discovery and TVL need
chain queries (UTxOs at the pool contracts) and stay placeholders: no pools,
TVL 0.
"""

from __future__ import annotations

import httpx
from loguru import logger

from cardano_adaptive.indexer.base import HttpIndexer, IndexableDApp, IndexResult, PoolData
from cardano_adaptive.indexer.generic import first_number

_VOLUME_KEYS = ("volume24h", "volume_24h")


class DexIndexer(HttpIndexer):
    type = "dex"

    async def index(self, dapp: IndexableDApp) -> IndexResult:
        logger.debug(f"[DexIndexer] Indexing {dapp.name}")
        pools = await self.query_pools(dapp)
        return IndexResult(
            success=True,
            tvl=self.calculate_tvl(pools),
            volume_24h=await self.volume_24h(dapp),
            pools=pools,
        )

    async def query_pools(self, dapp: IndexableDApp) -> list[PoolData]:
        # TODO: parse pool datums from UTxOs at dapp.contract_addresses (Blockfrost)
        return []

    def calculate_tvl(self, pools: list[PoolData]) -> float:
        return 0.0

    async def volume_24h(self, dapp: IndexableDApp) -> float | None:
        if not dapp.api_endpoint:
            return None
        url = f"{dapp.api_endpoint.rstrip('/')}/volume"
        try:
            async with self._client() as client:
                resp = await client.get(url)
                if not resp.is_success:
                    return None
                return first_number(resp.json(), _VOLUME_KEYS)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[DexIndexer] Could not fetch volume for {dapp.name}: {e}")
            return None
