import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardano_adaptive.registry.resolver import DAppResolver
from cardano_adaptive.registry.store import SqlRegistryStore
from cardano_adaptive.storage.repository import DAppRepo


async def test_find_supporting_returns_only_matching_interfaces(
    seeded_factory: async_sessionmaker[AsyncSession],
) -> None:
    entries = await SqlRegistryStore(seeded_factory).find_supporting("nft-buy")

    assert [e.name for e in entries] == ["JPG Store"]
    assert [i.action_type for i in entries[0].interfaces] == ["nft-buy"]


async def test_find_supporting_skips_inactive_dapps(
    seeded_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with seeded_factory() as session:
        liqwid = await DAppRepo(session).get("liqwid-mainnet")
        liqwid.is_active = False
        await session.commit()

    assert await SqlRegistryStore(seeded_factory).find_supporting("stake") == []


async def test_concurrent_queries_use_separate_sessions(
    seeded_factory: async_sessionmaker[AsyncSession],
) -> None:
    store = SqlRegistryStore(seeded_factory)

    swaps, stakes = await asyncio.gather(
        store.find_supporting("swap"), store.find_supporting("stake"),
    )

    assert {e.id for e in swaps} == {"minswap-mainnet", "sundaeswap-mainnet", "muesliswap-mainnet"}
    assert [e.id for e in stakes] == ["liqwid-mainnet"]


async def test_seeded_swap_resolves_to_dex_with_ada_djed_pool(
    seeded_factory: async_sessionmaker[AsyncSession],
) -> None:
    resolver = DAppResolver(SqlRegistryStore(seeded_factory))

    res = await resolver.resolve("swap", {"fromToken": "ADA", "toToken": "DJED", "amount": "100"})

    assert res.selected.name == "Minswap"
    assert res.quote is not None and res.quote.pool_address == "minswap-ada-djed-pool"
    assert len(res.alternatives) == 3
