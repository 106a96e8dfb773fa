"""Free text → enriched actions."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from loguru import logger
from pydantic import field_validator

from cardano_adaptive.api.deps import ClassifierDep, ResolverDep, SessionDep
from cardano_adaptive.chains.models import EnrichedAction
from cardano_adaptive.chains.orchestrator import IntentOrchestrator
from cardano_adaptive.storage.models import ExecutionMode
from cardano_adaptive.storage.repository import ActionChainRepo
from cardano_adaptive.ui.schema_compiler import CamelModel

router = APIRouter()


# ── schemas ──────────────────────────────────────────────────────────────


class ParseIntentRequest(CamelModel):
    input: str

    @field_validator("input")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("input must not be empty")
        return value


class ParseIntentResponse(CamelModel):
    success: bool = True
    chain_id: str | None = None
    execution_mode: ExecutionMode
    actions: list[EnrichedAction]
    intent: dict[str, Any] | None = None


# ── routes ───────────────────────────────────────────────────────────────


@router.post("/parse-intent", response_model=ParseIntentResponse)
async def parse_intent(
    body: ParseIntentRequest,
    session: SessionDep,
    classifier: ClassifierDep,
    resolver: ResolverDep,
) -> ParseIntentResponse:
    logger.info(f"Parsing intent: {body.input!r}")
    orchestrator = IntentOrchestrator(classifier, resolver, ActionChainRepo(session))
    result = await orchestrator.orchestrate(body.input)
    return ParseIntentResponse(
        chain_id=result.chain_id,
        execution_mode=result.execution_mode,
        actions=result.actions,
        intent=result.intent.to_wire() if result.intent else None,
    )
