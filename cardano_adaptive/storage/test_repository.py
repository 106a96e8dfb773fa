from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardano_adaptive.seed import seed_registry
from cardano_adaptive.storage.models import ChainStatus, Pool
from cardano_adaptive.storage.repository import ActionChainRepo, DAppRepo, PoolRepo


async def test_seed_is_idempotent(seeded_factory: async_sessionmaker[AsyncSession]) -> None:
    async with seeded_factory() as session:
        counts = await seed_registry(session)
        await session.commit()

    async with seeded_factory() as session:
        stats = await DAppRepo(session).stats()

    assert counts == {"dapps": 5, "interfaces": 7, "pools": 1}
    assert stats["total"] == 5
    assert stats["active"] == 5
    assert stats["with_interfaces"] == 5
    assert {"type": "dex", "count": 3} in stats["by_type"]
    assert len(stats["samples"]) == 5


async def test_list_by_action_type_filters_interfaces_and_limits(
    seeded_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with seeded_factory() as session:
        repo = DAppRepo(session)
        swaps = await repo.list_by_action_type("swap", limit=2)
        nothing = await repo.list_by_action_type("bridge")

    assert len(swaps) == 2
    assert all(d.type.value == "dex" for d in swaps)
    assert nothing == []


async def test_update_metrics_stamps_last_indexed(
    seeded_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with seeded_factory() as session:
        row = await DAppRepo(session).update_metrics("minswap-mainnet", tvl=1.5e8, volume_24h=2.0e6)
        missing = await DAppRepo(session).update_metrics("nope", tvl=None, volume_24h=None)

    assert row is not None and row.tvl == 1.5e8
    assert row.last_indexed is not None
    assert missing is None


async def test_pool_upsert_updates_reserves_in_place(
    seeded_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with seeded_factory() as session:
        repo = PoolRepo(session)
        await repo.upsert(
            dapp_id="minswap-mainnet", pool_address="minswap-ada-djed-pool",
            token0="ADA", token1="DJED", reserve0="1", reserve1="2", fee=0.003, liquidity="3",
        )
        pools = list(await session.scalars(select(Pool).where(Pool.dapp_id == "minswap-mainnet")))

    assert len(pools) == 1
    assert (pools[0].reserve0, pools[0].reserve1, pools[0].liquidity) == ("1", "2", "3")


async def test_completed_chain_is_never_regressed(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with session_factory() as session:
        repo = ActionChainRepo(session)
        chain_id = await repo.create_chain("swap then stake", [{"status": "pending"}], "sequential")
        await repo.update_chain(chain_id, [{"status": "completed"}], ChainStatus.COMPLETED)
        await repo.update_chain(chain_id, [{"status": "pending"}], ChainStatus.IN_PROGRESS)
        chain = await repo.get(chain_id)

    assert chain.status == "completed"
    assert chain.actions == [{"status": "completed"}]
    assert chain.completed_at is not None
