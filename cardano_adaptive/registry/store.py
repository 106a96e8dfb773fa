"""Registry query collaborator.

The resolver never touches ORM rows directly.  ``SqlRegistryStore`` opens a
fresh session per query (so concurrent resolutions never share one) and hands
back frozen snapshots that stay valid after the session closes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardano_adaptive.storage.models import DApp
from cardano_adaptive.storage.repository import DAppRepo


@dataclass(frozen=True, slots=True)
class InterfaceRecord:
    dapp_id: str
    action_type: str
    input_schema: Any
    output_schema: Any
    contract_interface: Any
    example_usage: str | None = None


@dataclass(frozen=True, slots=True)
class PoolRecord:
    pool_address: str
    token0: str
    token1: str
    reserve0: str = "0"
    reserve1: str = "0"
    fee: float = 0.003
    liquidity: str = "0"

    def references(self, *tokens: str | None) -> bool:
        pair = (self.token0.upper(), self.token1.upper())
        return any(t is not None and t.upper() in pair for t in tokens)


@dataclass(frozen=True, slots=True)
class RegistryEntry:
    """A candidate dApp annotated with only its matching interface(s)."""

    id: str
    name: str
    type: str
    interfaces: tuple[InterfaceRecord, ...] = ()
    pools: tuple[PoolRecord, ...] = ()

    def interface_for(self, action_type: str) -> InterfaceRecord | None:
        return next((i for i in self.interfaces if i.action_type == action_type), None)


class RegistryStore(Protocol):
    async def find_supporting(self, action_type: str, limit: int = 5) -> list[RegistryEntry]:
        """Active dApps with an interface for ``action_type``, in query order."""
        ...


def snapshot(dapp: DApp, action_type: str | None = None) -> RegistryEntry:
    interfaces = [
        i for i in dapp.interfaces if action_type is None or i.action_type == action_type
    ]
    return RegistryEntry(
        id=dapp.id,
        name=dapp.name,
        type=dapp.type.value,
        interfaces=tuple(
            InterfaceRecord(
                dapp_id=dapp.id,
                action_type=i.action_type,
                input_schema=i.input_schema,
                output_schema=i.output_schema,
                contract_interface=i.contract_interface,
                example_usage=i.example_usage,
            )
            for i in interfaces
        ),
        pools=tuple(
            PoolRecord(
                pool_address=p.pool_address,
                token0=p.token0,
                token1=p.token1,
                reserve0=p.reserve0,
                reserve1=p.reserve1,
                fee=p.fee,
                liquidity=p.liquidity,
            )
            for p in dapp.pools
        ),
    )


class SqlRegistryStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_supporting(self, action_type: str, limit: int = 5) -> list[RegistryEntry]:
        async with self._session_factory() as session:
            dapps = await DAppRepo(session).list_by_action_type(action_type, limit=limit)
            entries = [snapshot(d, action_type) for d in dapps]
        logger.debug(f"Registry: {len(entries)} candidate(s) for '{action_type}'")
        return entries
