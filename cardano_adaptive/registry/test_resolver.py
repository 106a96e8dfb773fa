import pytest

from cardano_adaptive.errors import NoInterfaceFound, NoProviderFound
from cardano_adaptive.registry.resolver import DAppResolver
from cardano_adaptive.registry.store import InterfaceRecord, PoolRecord, RegistryEntry
from cardano_adaptive.ui.schema_compiler import FieldKind

_SWAP_INPUT = {
    "fromToken": {"type": "token-selector", "label": "From"},
    "toToken": {"type": "token-selector", "label": "To"},
    "amount": {"type": "number", "label": "Amount", "min": 0},
}


class _FakeStore:
    def __init__(self, *entries: RegistryEntry) -> None:
        self._entries = list(entries)
        self.queries: list[tuple[str, int]] = []

    async def find_supporting(self, action_type: str, limit: int = 5) -> list[RegistryEntry]:
        self.queries.append((action_type, limit))
        return [
            e for e in self._entries if e.interface_for(action_type) is not None
        ][:limit]


def _dex(dapp_id: str, name: str, *pools: PoolRecord) -> RegistryEntry:
    return RegistryEntry(
        id=dapp_id,
        name=name,
        type="dex",
        interfaces=(InterfaceRecord(dapp_id, "swap", _SWAP_INPUT, {"outputAmount": "number"}, {}),),
        pools=pools,
    )


async def test_swap_prefers_candidate_with_matching_pool() -> None:
    store = _FakeStore(
        _dex("sundaeswap", "SundaeSwap"),
        _dex("minswap", "Minswap", PoolRecord("pool-ada-djed", "ADA", "DJED", fee=0.003)),
    )

    res = await DAppResolver(store).resolve("swap", {"fromToken": "ADA", "toToken": "DJED"})

    assert res.selected.id == "minswap"
    assert res.quote is not None
    assert (res.quote.provider, res.quote.pool_address, res.quote.fee) == ("Minswap", "pool-ada-djed", 0.003)
    assert res.quote.placeholder and res.quote.estimated_output is None
    assert [a.id for a in res.alternatives] == ["sundaeswap", "minswap"]


async def test_swap_without_pool_match_takes_first_candidate() -> None:
    store = _FakeStore(
        _dex("sundaeswap", "SundaeSwap"),
        _dex("minswap", "Minswap", PoolRecord("pool-min-snek", "MIN", "SNEK")),
    )

    res = await DAppResolver(store).resolve("swap", {"fromToken": "ADA", "toToken": "DJED"})

    assert res.selected.id == "sundaeswap"
    assert res.quote is None


async def test_swap_needs_both_tokens_for_pool_matching() -> None:
    store = _FakeStore(
        _dex("sundaeswap", "SundaeSwap"),
        _dex("minswap", "Minswap", PoolRecord("pool-ada-djed", "ADA", "DJED")),
    )

    res = await DAppResolver(store).resolve("swap", {"fromToken": "ADA"})

    assert res.selected.id == "sundaeswap"


async def test_resolution_attaches_compiled_schema() -> None:
    res = await DAppResolver(_FakeStore(_dex("minswap", "Minswap"))).resolve("swap")

    assert res.ui_schema.title == "Swap on Minswap"
    assert [f.kind for f in res.ui_schema.fields] == [
        FieldKind.TOKEN_SELECTOR, FieldKind.TOKEN_SELECTOR, FieldKind.NUMBER,
    ]


async def test_empty_registry_raises_no_provider_naming_action() -> None:
    with pytest.raises(NoProviderFound) as exc_info:
        await DAppResolver(_FakeStore()).resolve("nft-buy")

    assert exc_info.value.action_type == "nft-buy"
    assert "nft-buy" in str(exc_info.value)


async def test_candidate_without_interface_raises_no_interface() -> None:
    class _Broken(_FakeStore):
        async def find_supporting(self, action_type: str, limit: int = 5) -> list[RegistryEntry]:
            return [RegistryEntry(id="x", name="Ghost", type="dex")]

    with pytest.raises(NoInterfaceFound):
        await DAppResolver(_Broken()).resolve("swap")


async def test_candidate_limit_is_passed_to_store() -> None:
    store = _FakeStore(_dex("minswap", "Minswap"))

    await DAppResolver(store, candidate_limit=3).resolve("swap")

    assert store.queries == [("swap", 3)]
