"""Thin data-access helpers on top of SQLAlchemy async sessions.

Each repository is instantiated with a scoped AsyncSession and provides
typed CRUD for one aggregate.  Resolution logic stays in the service layer.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cardano_adaptive.storage.models import (
    ActionChain,
    ChainStatus,
    DApp,
    DAppCategory,
    DAppInterface,
    Pool,
)


# ── registry ──────────────────────────────────────────────────────────────


class DAppRepo:
    def __init__(self, s: AsyncSession) -> None:
        self._s = s

    async def get(self, dapp_id: str) -> DApp | None:
        stmt = (
            select(DApp)
            .where(DApp.id == dapp_id)
            .options(selectinload(DApp.interfaces), selectinload(DApp.pools))
        )
        return await self._s.scalar(stmt)

    async def list_by_action_type(self, action_type: str, limit: int = 5) -> list[DApp]:
        """Active dApps with at least one interface for ``action_type``, in registry order."""
        stmt = (
            select(DApp)
            .where(and_(
                DApp.is_active.is_(True),
                DApp.interfaces.any(DAppInterface.action_type == action_type),
            ))
            .options(selectinload(DApp.interfaces), selectinload(DApp.pools))
            .order_by(DApp.created_at.asc(), DApp.id.asc())
            .limit(limit)
        )
        return list(await self._s.scalars(stmt))

    async def list_active(self) -> list[DApp]:
        stmt = (
            select(DApp)
            .where(DApp.is_active.is_(True))
            .options(selectinload(DApp.interfaces), selectinload(DApp.pools))
            .order_by(DApp.last_indexed.desc().nulls_last(), DApp.name.asc())
        )
        return list(await self._s.scalars(stmt))

    async def stats(self, sample_size: int = 5) -> dict[str, Any]:
        total = await self._s.scalar(select(func.count()).select_from(DApp)) or 0
        active = await self._s.scalar(
            select(func.count()).select_from(DApp).where(DApp.is_active.is_(True))
        ) or 0
        with_interfaces = await self._s.scalar(
            select(func.count()).select_from(DApp).where(DApp.interfaces.any())
        ) or 0

        rows = await self._s.execute(
            select(DApp.type, func.count())
            .group_by(DApp.type)
            .order_by(func.count().desc())
        )
        by_type = [{"type": t.value, "count": n} for t, n in rows.all()]

        samples = await self._s.scalars(
            select(DApp)
            .where(DApp.is_active.is_(True))
            .order_by(DApp.last_indexed.desc().nulls_last(), DApp.name.asc())
            .limit(sample_size)
        )
        return {
            "total": total,
            "active": active,
            "with_interfaces": with_interfaces,
            "by_type": by_type,
            "samples": [
                {
                    "name": d.name,
                    "type": d.type.value,
                    "description": d.description,
                    "website_url": d.website_url,
                }
                for d in samples
            ],
        }

    async def upsert(
        self,
        dapp_id: str,
        name: str,
        type: DAppCategory,
        description: str,
        contract_addresses: list[str],
        website_url: str,
        logo_url: str | None = None,
        api_endpoint: str | None = None,
        is_active: bool = True,
    ) -> DApp:
        row = await self._s.get(DApp, dapp_id)
        if row is None:
            row = DApp(id=dapp_id)
            self._s.add(row)
        row.name = name
        row.type = type
        row.description = description
        row.contract_addresses = list(contract_addresses)
        row.website_url = website_url
        row.logo_url = logo_url
        row.api_endpoint = api_endpoint
        row.is_active = is_active
        await self._s.flush()
        return row

    async def upsert_interface(
        self,
        dapp_id: str,
        action_type: str,
        input_schema: dict[str, Any],
        output_schema: dict[str, Any],
        contract_interface: dict[str, Any],
        example_usage: str | None = None,
    ) -> DAppInterface:
        stmt = select(DAppInterface).where(
            and_(DAppInterface.dapp_id == dapp_id, DAppInterface.action_type == action_type)
        )
        row = await self._s.scalar(stmt)
        if row is None:
            row = DAppInterface(dapp_id=dapp_id, action_type=action_type)
            self._s.add(row)
        row.input_schema = dict(input_schema)
        row.output_schema = dict(output_schema)
        row.contract_interface = dict(contract_interface)
        row.example_usage = example_usage
        await self._s.flush()
        return row

    async def update_metrics(
        self, dapp_id: str, tvl: float | None, volume_24h: float | None,
    ) -> DApp | None:
        row = await self._s.get(DApp, dapp_id)
        if row is None:
            return None
        row.tvl = tvl
        row.volume_24h = volume_24h
        row.last_indexed = datetime.now(tz=UTC)
        await self._s.flush()
        return row


class PoolRepo:
    def __init__(self, s: AsyncSession) -> None:
        self._s = s

    async def upsert(
        self,
        dapp_id: str,
        pool_address: str,
        token0: str,
        token1: str,
        reserve0: str,
        reserve1: str,
        fee: float,
        liquidity: str,
    ) -> Pool:
        row = await self._s.scalar(select(Pool).where(Pool.pool_address == pool_address))
        if row is None:
            row = Pool(
                dapp_id=dapp_id, pool_address=pool_address,
                token0=token0, token1=token1, fee=fee,
            )
            self._s.add(row)
        row.reserve0 = reserve0
        row.reserve1 = reserve1
        row.liquidity = liquidity
        row.last_updated = datetime.now(tz=UTC)
        await self._s.flush()
        return row


# ── action chains ─────────────────────────────────────────────────────────


class ActionChainRepo:
    """Chain persistence: the only records the pipeline both creates and mutates."""

    def __init__(self, s: AsyncSession) -> None:
        self._s = s

    async def create_chain(
        self,
        intent_text: str,
        actions: list[dict[str, Any]],
        execution_mode: str,
        user_id: str | None = None,
    ) -> str:
        chain = ActionChain(
            user_id=user_id,
            intent_text=intent_text,
            actions=list(actions),
            execution_mode=execution_mode,
            status=ChainStatus.PENDING.value,
        )
        self._s.add(chain)
        await self._s.flush()
        return chain.id

    async def get(self, chain_id: str) -> ActionChain | None:
        return await self._s.get(ActionChain, chain_id)

    async def update_chain(
        self, chain_id: str, actions: list[dict[str, Any]], status: ChainStatus,
    ) -> None:
        chain = await self._s.get(ActionChain, chain_id)
        if chain is None:
            return
        # never regress a completed chain
        if chain.status == ChainStatus.COMPLETED.value:
            return
        chain.actions = list(actions)
        chain.status = status.value
        if status == ChainStatus.COMPLETED and chain.completed_at is None:
            chain.completed_at = datetime.now(tz=UTC)
        await self._s.flush()
