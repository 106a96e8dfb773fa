"""Action-type → dApp resolution.

Selection policy: for swaps with both tokens known, the first candidate
declaring a pool that references either token wins; otherwise the first
candidate in query order.  There is no scoring.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from cardano_adaptive.errors import NoInterfaceFound, NoProviderFound
from cardano_adaptive.registry.store import (
    InterfaceRecord,
    PoolRecord,
    RegistryEntry,
    RegistryStore,
)
from cardano_adaptive.ui.schema_compiler import CamelModel, UISchema, compile_interface

SWAP = "swap"

_FROM_KEYS = ("fromToken", "token0")
_TO_KEYS = ("toToken", "token1")


class SwapQuote(CamelModel):
    """Quote sourced from a matched pool.

    ``estimated_output`` is never computed here: output pricing is a stub
    boundary, so quotes are always flagged ``placeholder``.
    """

    provider: str
    pool_address: str
    fee: float
    estimated_output: str | None = None
    placeholder: bool = True


class DAppAlternative(CamelModel):
    id: str
    name: str
    type: str


@dataclass(frozen=True, slots=True)
class Resolution:
    selected: RegistryEntry
    interface: InterfaceRecord
    ui_schema: UISchema
    alternatives: list[DAppAlternative]
    quote: SwapQuote | None = None


def _token(parameters: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = parameters.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _pool_match(
    candidates: list[RegistryEntry], from_token: str, to_token: str,
) -> tuple[RegistryEntry, PoolRecord] | None:
    for entry in candidates:
        for pool in entry.pools:
            if pool.references(from_token, to_token):
                return entry, pool
    return None


class DAppResolver:
    def __init__(self, store: RegistryStore, candidate_limit: int = 5) -> None:
        self._store = store
        self._limit = candidate_limit

    async def resolve(
        self, action_type: str, parameters: dict[str, Any] | None = None,
    ) -> Resolution:
        params = parameters or {}
        candidates = await self._store.find_supporting(action_type, limit=self._limit)
        if not candidates:
            raise NoProviderFound(action_type)

        selected = candidates[0]
        quote: SwapQuote | None = None
        if action_type == SWAP:
            from_token, to_token = _token(params, _FROM_KEYS), _token(params, _TO_KEYS)
            if from_token and to_token:
                match = _pool_match(candidates, from_token, to_token)
                if match is not None:
                    selected, pool = match
                    quote = SwapQuote(
                        provider=selected.name,
                        pool_address=pool.pool_address,
                        fee=pool.fee,
                    )

        interface = selected.interface_for(action_type)
        if interface is None:
            raise NoInterfaceFound(selected.name, action_type)

        logger.info(
            f"Resolved '{action_type}' → {selected.name} "
            f"({len(candidates)} candidate(s){', pool quote' if quote else ''})"
        )
        return Resolution(
            selected=selected,
            interface=interface,
            ui_schema=compile_interface(interface, selected.name),
            alternatives=[DAppAlternative(id=c.id, name=c.name, type=c.type) for c in candidates],
            quote=quote,
        )
