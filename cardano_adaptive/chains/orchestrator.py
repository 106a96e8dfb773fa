"""Intent resolution orchestrator: classified intent → enriched actions.

Every classified action must resolve to a dApp; one unresolvable action
aborts the whole request because the client renders every listed action.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from loguru import logger

from cardano_adaptive.chains.models import ChainStore, EnrichedAction
from cardano_adaptive.errors import ActionResolutionFailed, NoProviderFound
from cardano_adaptive.nl.intent_engine import (
    IntentClassifier,
    MultiActionIntent,
    ParsedAction,
    ParsedIntent,
)
from cardano_adaptive.nl.params import params_to_wire
from cardano_adaptive.registry.resolver import DAppResolver, Resolution
from cardano_adaptive.storage.models import ExecutionMode


@dataclass(slots=True)
class OrchestrationResult:
    actions: list[EnrichedAction]
    execution_mode: ExecutionMode = ExecutionMode.SEQUENTIAL
    chain_id: str | None = None
    intent: ParsedIntent | None = None  # single-action path only

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "chainId": self.chain_id,
            "executionMode": self.execution_mode.value,
            "actions": [a.to_record() for a in self.actions],
        }
        if self.intent is not None:
            out["intent"] = self.intent.to_wire()
        return out


def _as_actions(intent: ParsedIntent | MultiActionIntent) -> tuple[list[ParsedAction], ExecutionMode]:
    if isinstance(intent, MultiActionIntent):
        return list(intent.actions), intent.execution_mode
    single = ParsedAction(
        order=1,
        type=intent.type,
        confidence=intent.confidence,
        parameters=intent.parameters,
    )
    return [single], ExecutionMode.SEQUENTIAL


class IntentOrchestrator:
    def __init__(
        self,
        classifier: IntentClassifier,
        resolver: DAppResolver,
        chains: ChainStore,
    ) -> None:
        self._classifier = classifier
        self._resolver = resolver
        self._chains = chains

    async def _resolve(
        self, action: ParsedAction, intent: ParsedIntent | MultiActionIntent,
    ) -> Resolution:
        try:
            return await self._resolver.resolve(action.type, action.parameters)
        except NoProviderFound as exc:
            external = None
            if isinstance(intent, ParsedIntent) and intent.external_platform:
                external = intent.external_platform.to_wire()
            raise ActionResolutionFailed(action.type, action.order, external) from exc

    async def orchestrate(self, text: str) -> OrchestrationResult:
        intent = await self._classifier.classify(text)
        parsed, mode = _as_actions(intent)

        # gather preserves argument order regardless of completion order;
        # the first failure in input order wins once every lookup has settled
        outcomes = await asyncio.gather(
            *(self._resolve(a, intent) for a in parsed), return_exceptions=True,
        )
        resolutions: list[Resolution] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            resolutions.append(outcome)

        actions = [
            EnrichedAction(
                order=a.order,
                action_type=a.type,
                dapp_id=r.selected.id,
                dapp_name=r.selected.name,
                parameters=params_to_wire(a.parameters),
                confidence=a.confidence,
                depends_on=a.depends_on,
                output_used_by=list(a.output_used_by),
                ui_schema=r.ui_schema,
                quote=r.quote,
                alternatives=r.alternatives,
            )
            for a, r in zip(parsed, resolutions)
        ]

        chain_id = None
        if len(actions) > 1:
            chain_id = await self._chains.create_chain(
                text, [a.to_record() for a in actions], mode.value,
            )
            logger.info(f"Created action chain {chain_id} ({len(actions)} actions, {mode.value})")

        return OrchestrationResult(
            actions=actions,
            execution_mode=mode,
            chain_id=chain_id,
            intent=intent if isinstance(intent, ParsedIntent) else None,
        )
