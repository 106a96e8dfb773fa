"""NL intent classification, fully delegated to the LLM.

No keyword heuristics live here.  The model receives a fixed system prompt
with the action vocabulary and a strict JSON contract; this module only
checks that the reply honours the contract.  A reply that does not is a
``MalformedResponse``, never a silent ``unknown`` intent.
"""

from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Any, Union

from loguru import logger

from cardano_adaptive.errors import ClassificationUnavailable, MalformedResponse
from cardano_adaptive.nl.params import Params, coerce_params, params_to_wire, references
from cardano_adaptive.providers.base import LLMProvider
from cardano_adaptive.settings import AdaptiveSettings
from cardano_adaptive.storage.models import ExecutionMode

ACTION_VOCABULARY = (
    "swap", "stake", "unstake", "balance", "nft-browse", "nft-buy", "payment", "unknown",
)

SYSTEM_PROMPT = """You are an intent parser for a Cardano blockchain application. \
Analyse the user's request and decide which action(s) they want to perform.

Action types:
- swap: exchange one token for another ("swap 100 ADA for DJED")
- stake: supply or delegate tokens to earn yield
- unstake: withdraw staked or supplied tokens
- balance: check wallet balance
- nft-browse / nft-buy: browse or buy NFTs (JPG Store is registered)
- payment: fiat on/off ramp; suggest an external platform
- unknown: anything else

Reply with JSON only, no prose.

For a single action:
{
  "type": "<action type>",
  "confidence": 0.0-1.0,
  "parameters": {"fromToken": "ADA", "toToken": "DJED", "amount": "100"},
  "suggestion": "optional clarification",
  "externalPlatform": {"name": "...", "url": "https://...", "reason": "..."}
}

For several steps, use an "actions" array instead:
{
  "actions": [
    {"order": 1, "type": "swap", "confidence": 0.9,
     "parameters": {"fromToken": "ADA", "toToken": "DJED", "amount": "100"},
     "outputUsedBy": [2]},
    {"order": 2, "type": "stake", "confidence": 0.85,
     "parameters": {"token": "DJED", "amount": {"fromAction": 1, "field": "outputAmount"}},
     "dependsOn": 1}
  ],
  "executionMode": "sequential" | "parallel" | "mixed"
}

Orders start at 1 and are contiguous. When a parameter should be filled with an \
earlier action's result, use the object {"fromAction": <order>, "field": "<result field>"}; \
it may only point at a smaller order."""


@dataclass(frozen=True, slots=True)
class ExternalPlatform:
    name: str
    url: str
    reason: str = ""

    def to_wire(self) -> dict[str, str]:
        return {"name": self.name, "url": self.url, "reason": self.reason}


@dataclass(frozen=True, slots=True)
class ParsedIntent:
    type: str
    confidence: float
    parameters: Params = field(default_factory=dict)
    suggestion: str | None = None
    external_platform: ExternalPlatform | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "confidence": self.confidence,
            "parameters": params_to_wire(self.parameters),
            "suggestion": self.suggestion,
            "externalPlatform": self.external_platform.to_wire() if self.external_platform else None,
        }


@dataclass(frozen=True, slots=True)
class ParsedAction:
    order: int
    type: str
    confidence: float
    parameters: Params = field(default_factory=dict)
    depends_on: int | None = None
    output_used_by: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class MultiActionIntent:
    actions: tuple[ParsedAction, ...]
    execution_mode: ExecutionMode = ExecutionMode.SEQUENTIAL

    @property
    def total_actions(self) -> int:
        return len(self.actions)


IntentResult = Union[ParsedIntent, MultiActionIntent]


# ---------------------------------------------------------------------------
# response parsing
# ---------------------------------------------------------------------------

_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_code_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text, count=1), count=1)
    return text.strip()


def _confidence(value: Any, raw: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise MalformedResponse(f"confidence {value!r} is not a number", raw) from None
    return min(1.0, max(0.0, float(value)))


def _action_type(value: Any, raw: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise MalformedResponse("intent 'type' must be a non-empty string", raw)
    return value.strip()


def _parameters(value: Any, raw: str) -> Params:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedResponse("'parameters' must be an object", raw)
    return coerce_params(value)


def _order(value: Any, what: str, raw: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedResponse(f"{what} must be an integer order, got {value!r}", raw)
    return value


def _external_platform(value: Any) -> ExternalPlatform | None:
    if not isinstance(value, dict):
        return None
    name, url = value.get("name"), value.get("url")
    if not isinstance(name, str) or not isinstance(url, str):
        return None
    reason = value.get("reason")
    return ExternalPlatform(name=name, url=url, reason=reason if isinstance(reason, str) else "")


def _single(data: dict[str, Any], raw: str) -> ParsedIntent:
    suggestion = data.get("suggestion")
    return ParsedIntent(
        type=_action_type(data.get("type"), raw),
        confidence=_confidence(data.get("confidence"), raw),
        parameters=_parameters(data.get("parameters"), raw),
        suggestion=suggestion if isinstance(suggestion, str) and suggestion else None,
        external_platform=_external_platform(data.get("externalPlatform")),
    )


def _parsed_action(item: Any, position: int, raw: str) -> ParsedAction:
    if not isinstance(item, dict):
        raise MalformedResponse(f"action #{position} is not an object", raw)
    order = _order(item.get("order", position), "action 'order'", raw)

    depends_on = item.get("dependsOn")
    if depends_on is not None:
        depends_on = _order(depends_on, f"action {order} 'dependsOn'", raw)

    used_by = item.get("outputUsedBy") or []
    if not isinstance(used_by, list):
        raise MalformedResponse(f"action {order} 'outputUsedBy' must be a list", raw)

    return ParsedAction(
        order=order,
        type=_action_type(item.get("type"), raw),
        confidence=_confidence(item.get("confidence"), raw),
        parameters=_parameters(item.get("parameters"), raw),
        depends_on=depends_on,
        output_used_by=tuple(_order(o, f"action {order} 'outputUsedBy'", raw) for o in used_by),
    )


def _check_links(actions: list[ParsedAction], raw: str) -> None:
    for a in actions:
        if a.depends_on is not None and not 1 <= a.depends_on < a.order:
            raise MalformedResponse(
                f"action {a.order} depends on action {a.depends_on}; "
                f"dependencies must point to an earlier action",
                raw,
            )
        for ref in references(a.parameters):
            if not 1 <= ref.from_action < a.order:
                raise MalformedResponse(
                    f"action {a.order} references the output of action {ref.from_action}; "
                    f"references must point to an earlier action",
                    raw,
                )
        for later in a.output_used_by:
            if not a.order < later <= len(actions):
                raise MalformedResponse(
                    f"action {a.order} lists action {later} as a consumer; "
                    f"consumers must be later actions",
                    raw,
                )


def _multi(data: dict[str, Any], raw: str) -> MultiActionIntent:
    items = data["actions"]
    if not isinstance(items, list) or not items:
        raise MalformedResponse("'actions' must be a non-empty array", raw)

    actions = sorted(
        (_parsed_action(item, i, raw) for i, item in enumerate(items, start=1)),
        key=lambda a: a.order,
    )
    if [a.order for a in actions] != list(range(1, len(actions) + 1)):
        raise MalformedResponse("action orders must form a contiguous 1-based sequence", raw)
    _check_links(actions, raw)

    try:
        mode = ExecutionMode(data.get("executionMode"))
    except ValueError:
        mode = ExecutionMode.SEQUENTIAL
    return MultiActionIntent(actions=tuple(actions), execution_mode=mode)


def parse_intent_response(raw: str) -> IntentResult:
    """Parse a model reply (bare or fenced JSON) into an intent."""
    text = strip_code_fence(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"model reply is not valid JSON: {exc.msg}", raw) from exc
    if not isinstance(data, dict):
        raise MalformedResponse("model reply must be a JSON object", raw)

    if data.get("actions") is not None:
        return _multi(data, raw)
    return _single(data, raw)


# ---------------------------------------------------------------------------
# classifier
# ---------------------------------------------------------------------------


class IntentClassifier:
    """Free text → ``ParsedIntent`` | ``MultiActionIntent`` via one LLM call.

    A missing provider means no credential was configured.  Calls are bounded
    by ``timeout`` and never retried.
    """

    def __init__(
        self,
        provider: LLMProvider | None,
        model: str | None = None,
        timeout: float = 8.0,
        max_tokens: int = 1024,
    ) -> None:
        self._provider = provider
        self._model = model
        self._timeout = timeout
        self._max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: AdaptiveSettings) -> IntentClassifier:
        from cardano_adaptive.providers.litellm_provider import LiteLLMProvider

        provider = None
        if settings.llm_api_key:
            provider = LiteLLMProvider(
                api_key=settings.llm_api_key,
                api_base=settings.llm_api_base,
                default_model=settings.llm_model,
                timeout=settings.llm_timeout_seconds,
            )
        return cls(
            provider,
            model=settings.llm_model,
            timeout=settings.llm_timeout_seconds,
            max_tokens=settings.llm_max_tokens,
        )

    async def classify(self, text: str) -> IntentResult:
        if self._provider is None:
            raise ClassificationUnavailable("Language model credential is not configured")

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f'Parse this user intent: "{text}"\n\nRespond with JSON only, no additional text.',
            },
        ]
        try:
            response = await asyncio.wait_for(
                self._provider.chat(messages, model=self._model, max_tokens=self._max_tokens),
                timeout=self._timeout,
            )
        except TimeoutError as exc:
            logger.error(f"Intent classification timed out after {self._timeout}s")
            raise ClassificationUnavailable(
                f"Language model did not answer within {self._timeout:g}s"
            ) from exc

        if response.failed:
            raise ClassificationUnavailable(response.content or "Language model call failed")

        result = parse_intent_response(response.content or "")
        if isinstance(result, MultiActionIntent):
            logger.info(
                f"Classified {result.total_actions} actions "
                f"({result.execution_mode.value}): {[a.type for a in result.actions]}"
            )
        else:
            logger.info(f"Classified '{result.type}' (confidence {result.confidence:.2f})")
        return result
