import asyncio
import json
from typing import Any

import pytest

from cardano_adaptive.conftest import ScriptedProvider
from cardano_adaptive.errors import ClassificationUnavailable, MalformedResponse
from cardano_adaptive.nl.intent_engine import (
    IntentClassifier,
    MultiActionIntent,
    ParsedIntent,
    parse_intent_response,
    strip_code_fence,
)
from cardano_adaptive.nl.params import ActionOutputRef
from cardano_adaptive.providers.base import LLMResponse
from cardano_adaptive.settings import AdaptiveSettings
from cardano_adaptive.storage.models import ExecutionMode


def _swap_reply() -> str:
    return json.dumps({
        "type": "swap",
        "confidence": 0.95,
        "parameters": {"fromToken": "ADA", "toToken": "DJED", "amount": "100"},
    })


def _chain_reply(**overrides: Any) -> dict[str, Any]:
    reply = {
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
        "executionMode": "sequential",
    }
    reply.update(overrides)
    return reply


def test_strip_code_fence_variants() -> None:
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('```\n{"a": 1}```') == '{"a": 1}'
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


async def test_classify_single_action() -> None:
    provider = ScriptedProvider(f"```json\n{_swap_reply()}\n```")
    classifier = IntentClassifier(provider, model="test-model")

    result = await classifier.classify("swap 100 ADA for DJED")

    assert isinstance(result, ParsedIntent)
    assert result.type == "swap"
    assert result.confidence == 0.95
    assert result.parameters == {"fromToken": "ADA", "toToken": "DJED", "amount": "100"}
    system, user = provider.calls[0]
    assert system["role"] == "system" and "nft-buy" in system["content"]
    assert "swap 100 ADA for DJED" in user["content"]


async def test_classify_multi_action_with_reference() -> None:
    classifier = IntentClassifier(ScriptedProvider(json.dumps(_chain_reply())))

    result = await classifier.classify("swap 100 ADA to DJED then stake it")

    assert isinstance(result, MultiActionIntent)
    assert result.total_actions == 2
    assert result.execution_mode is ExecutionMode.SEQUENTIAL
    second = result.actions[1]
    assert second.depends_on == 1
    assert second.parameters["amount"] == ActionOutputRef(from_action=1, field="outputAmount")
    assert result.actions[0].output_used_by == (2,)


def test_actions_are_sorted_and_mode_defaults_to_sequential() -> None:
    reply = _chain_reply(executionMode="whenever")
    reply["actions"].reverse()

    result = parse_intent_response(json.dumps(reply))

    assert [a.order for a in result.actions] == [1, 2]
    assert result.execution_mode is ExecutionMode.SEQUENTIAL


def test_missing_orders_default_to_position() -> None:
    reply = {"actions": [{"type": "swap"}, {"type": "stake"}]}

    result = parse_intent_response(json.dumps(reply))

    assert [(a.order, a.type) for a in result.actions] == [(1, "swap"), (2, "stake")]


def test_sentinel_like_strings_stay_literal() -> None:
    reply = {"type": "stake", "parameters": {"amount": "{{action_1_output}}"}}

    result = parse_intent_response(json.dumps(reply))

    assert result.parameters["amount"] == "{{action_1_output}}"


def test_confidence_is_clamped() -> None:
    result = parse_intent_response(json.dumps({"type": "swap", "confidence": 3}))

    assert result.confidence == 1.0


def test_external_platform_is_carried() -> None:
    reply = {
        "type": "payment",
        "confidence": 0.7,
        "suggestion": "Use a fiat ramp",
        "externalPlatform": {"name": "Strike", "url": "https://strike.me", "reason": "Fiat"},
    }

    result = parse_intent_response(json.dumps(reply))

    assert result.external_platform is not None
    assert result.to_wire()["externalPlatform"] == {
        "name": "Strike", "url": "https://strike.me", "reason": "Fiat",
    }


@pytest.mark.parametrize(
    "raw",
    [
        "I think you want to swap",
        "[1, 2]",
        json.dumps({"confidence": 0.5}),
        json.dumps({"type": "swap", "parameters": ["ADA"]}),
        json.dumps({"actions": []}),
        json.dumps({"actions": [{"order": 1, "type": "swap"}, {"order": 3, "type": "stake"}]}),
        json.dumps(_chain_reply(actions=[
            {"order": 1, "type": "swap", "dependsOn": 2},
            {"order": 2, "type": "stake"},
        ])),
        json.dumps(_chain_reply(actions=[
            {"order": 1, "type": "swap", "parameters": {"amount": {"fromAction": 1}}},
        ])),
        json.dumps(_chain_reply(actions=[
            {"order": 1, "type": "swap", "outputUsedBy": [1]},
        ])),
    ],
)
def test_contract_violations_are_malformed(raw: str) -> None:
    with pytest.raises(MalformedResponse) as exc_info:
        parse_intent_response(raw)

    assert exc_info.value.raw == raw


async def test_missing_credential_is_unavailable() -> None:
    classifier = IntentClassifier.from_settings(AdaptiveSettings(llm_api_key=""))

    with pytest.raises(ClassificationUnavailable):
        await classifier.classify("swap 1 ADA")


async def test_provider_error_is_unavailable_not_unknown() -> None:
    classifier = IntentClassifier(ScriptedProvider("rate limited", finish_reason="error"))

    with pytest.raises(ClassificationUnavailable, match="rate limited"):
        await classifier.classify("swap 1 ADA")


async def test_slow_provider_times_out() -> None:
    class _Hanging(ScriptedProvider):
        async def chat(self, messages, model=None, max_tokens=1024, temperature=0.0) -> LLMResponse:
            await asyncio.sleep(5)
            return LLMResponse(content=_swap_reply())

    classifier = IntentClassifier(_Hanging(), timeout=0.01)

    with pytest.raises(ClassificationUnavailable):
        await classifier.classify("swap 1 ADA")
