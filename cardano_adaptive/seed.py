"""Registry seed data: the launch set of DEX, NFT and lending dApps.

Idempotent: re-running upserts the same rows by id / action type / pool address.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from cardano_adaptive.storage.models import DAppCategory
from cardano_adaptive.storage.repository import DAppRepo, PoolRepo

_SWAP_INPUT: dict[str, Any] = {
    "fromToken": {"type": "token-selector", "label": "From", "required": True},
    "toToken": {"type": "token-selector", "label": "To", "required": True},
    "amount": {"type": "number", "label": "Amount", "required": True, "min": 0},
}

_SWAP_OUTPUT: dict[str, Any] = {
    "rate": "number",
    "outputAmount": "number",
    "fee": {"type": "number", "format": "currency"},
    "slippage": {"type": "number", "format": "percentage"},
    "priceImpact": {"type": "number", "format": "percentage"},
}

_LIQWID_TOKEN_AMOUNT: dict[str, Any] = {
    "token": {"type": "token-selector", "label": "Token", "required": True},
    "amount": {"type": "number", "label": "Amount", "required": True, "min": 0},
}


DAPPS: list[dict[str, Any]] = [
    {
        "dapp_id": "minswap-mainnet",
        "name": "Minswap",
        "type": DAppCategory.DEX,
        "description": "The first multi-pool decentralized exchange on Cardano",
        "contract_addresses": [
            "addr1z8snz7c4974vzdpxu65ruphl3zjdvtxw8strf2c2tmqnxz2j2c79gy9l76sdg0xwhd7r0c0kna0tycz4y5s6mlenh8pq0xmsha",
        ],
        "logo_url": "https://minswap.org/logo.png",
        "website_url": "https://minswap.org",
        "api_endpoint": "https://api-mainnet-prod.minswap.org",
        "interfaces": [
            {
                "action_type": "swap",
                "input_schema": _SWAP_INPUT,
                "output_schema": _SWAP_OUTPUT,
                "contract_interface": {
                    "batcherAddress": "addr1z8snz7c4974vzdpxu65ruphl3zjdvtxw8strf2c2tmqnxz2j2c79gy9l76sdg0xwhd7r0c0kna0tycz4y5s6mlenh8pq0xmsha",
                    "action": "swap",
                },
                "example_usage": "Swap ADA for MIN tokens with 0.3% fee",
            },
        ],
        "pools": [
            {
                "pool_address": "minswap-ada-djed-pool",
                "token0": "ADA",
                "token1": "DJED",
                "reserve0": "2500000000000",
                "reserve1": "3800000000000",
                "fee": 0.003,
                "liquidity": "3080000000000",
            },
        ],
    },
    {
        "dapp_id": "sundaeswap-mainnet",
        "name": "SundaeSwap",
        "type": DAppCategory.DEX,
        "description": "A decentralized exchange built on Cardano",
        "contract_addresses": ["addr1w9qzpelu9hn45pefc0xr4ac4kdxeswq7pndul2vuj59u8tqaxdznu"],
        "logo_url": "https://sundaeswap.finance/logo.png",
        "website_url": "https://sundaeswap.finance",
        "interfaces": [
            {
                "action_type": "swap",
                "input_schema": _SWAP_INPUT,
                "output_schema": _SWAP_OUTPUT,
                "contract_interface": {
                    "scooperAddress": "addr1w9qzpelu9hn45pefc0xr4ac4kdxeswq7pndul2vuj59u8tqaxdznu",
                    "action": "swap",
                },
                "example_usage": "Swap ADA for SUNDAE tokens with 0.3% fee",
            },
        ],
    },
    {
        "dapp_id": "muesliswap-mainnet",
        "name": "MuesliSwap",
        "type": DAppCategory.DEX,
        "description": "Hybrid DEX with both orderbook and AMM on Cardano",
        "contract_addresses": ["addr1w9qzpelu9hn45pefc0xr4ac4kdxeswq7pndul2vuj59u8tqaxdznu"],
        "logo_url": "https://muesliswap.com/logo.png",
        "website_url": "https://muesliswap.com",
        "api_endpoint": "https://api.muesliswap.com",
        "interfaces": [
            {
                "action_type": "swap",
                "input_schema": _SWAP_INPUT,
                "output_schema": _SWAP_OUTPUT,
                "contract_interface": {
                    "matcherAddress": "addr1w9qzpelu9hn45pefc0xr4ac4kdxeswq7pndul2vuj59u8tqaxdznu",
                    "action": "swap",
                },
                "example_usage": "Swap ADA for MILK tokens",
            },
        ],
    },
    {
        "dapp_id": "jpgstore-mainnet",
        "name": "JPG Store",
        "type": DAppCategory.NFT_MARKETPLACE,
        "description": "The largest NFT marketplace on Cardano",
        "contract_addresses": [],
        "logo_url": "https://jpg.store/logo.png",
        "website_url": "https://jpg.store",
        "api_endpoint": "https://api.jpg.store",
        "interfaces": [
            {
                "action_type": "nft-buy",
                "input_schema": {
                    "collectionId": {"type": "text", "label": "Collection ID", "required": True},
                    "nftId": {"type": "text", "label": "NFT ID", "required": True},
                    "maxPrice": {"type": "number", "label": "Max Price (ADA)", "required": True, "min": 0},
                },
                "output_schema": {
                    "nftName": "string",
                    "price": {"type": "number", "format": "currency"},
                    "seller": "string",
                    "transactionHash": "string",
                },
                "contract_interface": {"marketplace": "jpg.store", "action": "buy"},
                "example_usage": "Buy NFT from a specific collection",
            },
            {
                "action_type": "nft-browse",
                "input_schema": {
                    "collectionName": {"type": "text", "label": "Collection Name", "required": False},
                    "minPrice": {"type": "number", "label": "Min Price (ADA)", "required": False, "min": 0},
                    "maxPrice": {"type": "number", "label": "Max Price (ADA)", "required": False, "min": 0},
                },
                "output_schema": {"nfts": "array", "totalCount": "number"},
                "contract_interface": {"marketplace": "jpg.store", "action": "browse"},
                "example_usage": "Browse NFTs by collection and price range",
            },
        ],
    },
    {
        "dapp_id": "liqwid-mainnet",
        "name": "Liqwid",
        "type": DAppCategory.LENDING,
        "description": "Algorithmic and autonomous interest rate protocol on Cardano",
        "contract_addresses": [],
        "logo_url": "https://liqwid.finance/logo.png",
        "website_url": "https://liqwid.finance",
        "interfaces": [
            {
                "action_type": "stake",
                "input_schema": _LIQWID_TOKEN_AMOUNT,
                "output_schema": {
                    "apy": {"type": "number", "format": "percentage"},
                    "qTokensReceived": "number",
                    "transactionHash": "string",
                },
                "contract_interface": {"protocol": "liqwid", "action": "supply"},
                "example_usage": "Supply tokens to earn interest",
            },
            {
                "action_type": "unstake",
                "input_schema": _LIQWID_TOKEN_AMOUNT,
                "output_schema": {
                    "tokensReturned": "number",
                    "interestEarned": "number",
                    "transactionHash": "string",
                },
                "contract_interface": {"protocol": "liqwid", "action": "withdraw"},
                "example_usage": "Withdraw supplied tokens plus interest",
            },
        ],
    },
]


async def seed_registry(session: AsyncSession) -> dict[str, int]:
    """Upsert the launch registry; caller owns the transaction."""
    dapps, pools = DAppRepo(session), PoolRepo(session)
    counts = {"dapps": 0, "interfaces": 0, "pools": 0}

    for entry in DAPPS:
        await dapps.upsert(
            dapp_id=entry["dapp_id"],
            name=entry["name"],
            type=entry["type"],
            description=entry["description"],
            contract_addresses=entry["contract_addresses"],
            website_url=entry["website_url"],
            logo_url=entry.get("logo_url"),
            api_endpoint=entry.get("api_endpoint"),
        )
        counts["dapps"] += 1
        for iface in entry["interfaces"]:
            await dapps.upsert_interface(dapp_id=entry["dapp_id"], **iface)
            counts["interfaces"] += 1
        for pool in entry.get("pools", []):
            await pools.upsert(dapp_id=entry["dapp_id"], **pool)
            counts["pools"] += 1

    logger.info(
        f"Seeded registry: {counts['dapps']} dApps, "
        f"{counts['interfaces']} interfaces, {counts['pools']} pools"
    )
    return counts
