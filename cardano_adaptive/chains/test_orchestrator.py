import asyncio
import json
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardano_adaptive.chains.executor import ActionChainExecutor
from cardano_adaptive.chains.models import EnrichedAction
from cardano_adaptive.chains.orchestrator import IntentOrchestrator
from cardano_adaptive.conftest import ScriptedProvider
from cardano_adaptive.errors import ActionResolutionFailed
from cardano_adaptive.execution.mock import MockExecutionBoundary
from cardano_adaptive.nl.intent_engine import IntentClassifier
from cardano_adaptive.registry.resolver import DAppResolver
from cardano_adaptive.registry.store import InterfaceRecord, RegistryEntry, SqlRegistryStore
from cardano_adaptive.storage.models import ActionStatus, ChainStatus, ExecutionMode
from cardano_adaptive.storage.repository import ActionChainRepo
from cardano_adaptive.ui.schema_compiler import FieldKind

_SWAP_REPLY = {
    "type": "swap",
    "confidence": 0.93,
    "parameters": {"fromToken": "ADA", "toToken": "DJED", "amount": "100"},
}

_CHAIN_REPLY = {
    "actions": [
        {
            "order": 1, "type": "swap", "confidence": 0.9,
            "parameters": {"fromToken": "ADA", "toToken": "DJED", "amount": "100"},
            "outputUsedBy": [2],
        },
        {
            "order": 2, "type": "stake", "confidence": 0.8,
            "parameters": {"token": "DJED", "amount": {"fromAction": 1, "field": "outputAmount"}},
            "dependsOn": 1,
        },
    ],
}


class _SlowStore:
    """Answers later actions first so completion order differs from input order."""

    def __init__(self) -> None:
        self._delays = {"swap": 0.05, "stake": 0.0}

    async def find_supporting(self, action_type: str, limit: int = 5) -> list[RegistryEntry]:
        await asyncio.sleep(self._delays.get(action_type, 0.0))
        if action_type not in self._delays:
            return []
        iface = InterfaceRecord(f"{action_type}-dapp", action_type, {"amount": {"type": "number"}}, {}, {})
        return [RegistryEntry(id=f"{action_type}-dapp", name=action_type.title(), type="dex", interfaces=(iface,))]


class _ChainStore:
    def __init__(self) -> None:
        self.created: list[tuple[str, list[dict[str, Any]], str]] = []

    async def create_chain(self, intent_text: str, actions: list[dict[str, Any]], execution_mode: str) -> str:
        self.created.append((intent_text, actions, execution_mode))
        return f"chain-{len(self.created)}"

    async def update_chain(self, chain_id: str, actions: list[dict[str, Any]], status: ChainStatus) -> None:
        pass


def _orchestrator(reply: dict[str, Any], store: Any, chains: Any) -> IntentOrchestrator:
    classifier = IntentClassifier(ScriptedProvider(json.dumps(reply)))
    return IntentOrchestrator(classifier, DAppResolver(store), chains)


async def test_single_swap_end_to_end_without_chain(
    seeded_factory: async_sessionmaker[AsyncSession],
) -> None:
    chains = _ChainStore()
    orchestrator = _orchestrator(_SWAP_REPLY, SqlRegistryStore(seeded_factory), chains)

    result = await orchestrator.orchestrate("swap 100 ADA for DJED")

    assert result.chain_id is None
    assert chains.created == []
    assert result.execution_mode is ExecutionMode.SEQUENTIAL
    assert result.intent is not None and result.intent.type == "swap"
    [action] = result.actions
    assert (action.order, action.action_type, action.status) == (1, "swap", ActionStatus.PENDING)
    assert action.dapp_name == "Minswap"
    assert [(f.name, f.kind) for f in action.ui_schema.fields] == [
        ("fromToken", FieldKind.TOKEN_SELECTOR),
        ("toToken", FieldKind.TOKEN_SELECTOR),
        ("amount", FieldKind.NUMBER),
    ]
    assert action.quote is not None


async def test_multi_action_keeps_input_order_and_persists_chain() -> None:
    chains = _ChainStore()
    orchestrator = _orchestrator(_CHAIN_REPLY, _SlowStore(), chains)

    result = await orchestrator.orchestrate("swap 100 ADA to DJED and stake it")

    assert [a.action_type for a in result.actions] == ["swap", "stake"]
    assert [a.order for a in result.actions] == [1, 2]
    assert result.chain_id == "chain-1"
    intent_text, records, mode = chains.created[0]
    assert intent_text == "swap 100 ADA to DJED and stake it"
    assert mode == "sequential"
    assert [r["status"] for r in records] == ["pending", "pending"]
    assert records[1]["parameters"]["amount"] == {"fromAction": 1, "field": "outputAmount"}


async def test_unresolvable_action_aborts_orchestration() -> None:
    reply = {
        "actions": [
            {"order": 1, "type": "swap", "parameters": {"amount": "1"}},
            {"order": 2, "type": "payment", "parameters": {}},
        ],
    }
    chains = _ChainStore()

    with pytest.raises(ActionResolutionFailed) as exc_info:
        await _orchestrator(reply, _SlowStore(), chains).orchestrate("swap then pay rent")

    assert exc_info.value.action_type == "payment"
    assert exc_info.value.order == 2
    assert chains.created == []


async def test_single_action_failure_carries_external_platform() -> None:
    reply = {
        "type": "payment",
        "confidence": 0.8,
        "externalPlatform": {"name": "Strike", "url": "https://strike.me", "reason": "Fiat ramp"},
    }

    with pytest.raises(ActionResolutionFailed) as exc_info:
        await _orchestrator(reply, _SlowStore(), _ChainStore()).orchestrate("buy ADA with USD")

    payload = exc_info.value.to_payload()
    assert payload["error"] == "no_match"
    assert payload["externalPlatform"]["name"] == "Strike"


async def test_chain_runs_to_completion_against_stored_record(
    seeded_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with seeded_factory() as session:
        orchestrator = _orchestrator(_CHAIN_REPLY, SqlRegistryStore(seeded_factory), ActionChainRepo(session))
        result = await orchestrator.orchestrate("swap 100 ADA to DJED then stake it")
        await session.commit()

    assert result.chain_id is not None

    async with seeded_factory() as session:
        repo = ActionChainRepo(session)
        chain = await repo.get(result.chain_id)
        actions = [EnrichedAction.model_validate(a) for a in chain.actions]
        executor = ActionChainExecutor(
            actions,
            MockExecutionBoundary(),
            execution_mode=ExecutionMode(chain.execution_mode),
            chain_id=chain.id,
            store=repo,
        )
        report = await executor.run()
        await session.commit()

    assert report.chain_completed

    async with seeded_factory() as session:
        chain = await ActionChainRepo(session).get(result.chain_id)
        assert chain.status == ChainStatus.COMPLETED.value
        assert chain.completed_at is not None
        assert [a["status"] for a in chain.actions] == ["completed", "completed"]
        assert chain.actions[1]["parameters"]["amount"] == chain.actions[0]["result"]["outputAmount"]
