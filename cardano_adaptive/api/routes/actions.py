"""Action execution and chain lookup."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter
from loguru import logger
from pydantic import Field

from cardano_adaptive.api.deps import BoundaryDep, SessionDep
from cardano_adaptive.chains.executor import ActionChainExecutor
from cardano_adaptive.chains.models import EnrichedAction
from cardano_adaptive.errors import ActionExecutionFailed, ActionStateError, NoInterfaceFound, NotFound
from cardano_adaptive.storage.models import ActionChain, DApp, ExecutionMode
from cardano_adaptive.storage.repository import ActionChainRepo, DAppRepo
from cardano_adaptive.ui.schema_compiler import CamelModel, compile_interface

router = APIRouter()


# ── schemas ──────────────────────────────────────────────────────────────


class ExecuteActionRequest(CamelModel):
    chain_id: str | None = None
    action_order: int | None = None
    dapp_id: str
    action_type: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ExecuteActionResponse(CamelModel):
    success: bool = True
    chain_id: str | None = None
    action_order: int
    action_type: str
    dapp_id: str
    dapp_name: str
    result: Any = None
    chain_status: str | None = None


class ChainOut(CamelModel):
    id: str
    intent_text: str
    execution_mode: str
    status: str
    actions: list[dict[str, Any]]
    created_at: datetime
    completed_at: datetime | None = None


# ── helpers ──────────────────────────────────────────────────────────────


async def _load_chain(repo: ActionChainRepo, chain_id: str) -> ActionChain:
    chain = await repo.get(chain_id)
    if chain is None:
        raise NotFound(f"Action chain {chain_id} not found")
    return chain


def _standalone_action(dapp: DApp, body: ExecuteActionRequest) -> EnrichedAction:
    iface = next((i for i in dapp.interfaces if i.action_type == body.action_type), None)
    if iface is None:
        raise NoInterfaceFound(dapp.name, body.action_type)
    return EnrichedAction(
        order=1,
        action_type=body.action_type,
        dapp_id=dapp.id,
        dapp_name=dapp.name,
        parameters=body.parameters,
        ui_schema=compile_interface(iface, dapp.name),
    )


# ── routes ───────────────────────────────────────────────────────────────


@router.post("/actions/execute", response_model=ExecuteActionResponse)
async def execute_action(
    body: ExecuteActionRequest, session: SessionDep, boundary: BoundaryDep,
) -> ExecuteActionResponse:
    dapp = await DAppRepo(session).get(body.dapp_id)
    if dapp is None:
        raise NotFound(f"dApp {body.dapp_id} not found")

    if body.chain_id is not None and body.action_order is not None:
        repo = ActionChainRepo(session)
        chain = await _load_chain(repo, body.chain_id)
        executor = ActionChainExecutor(
            [EnrichedAction.model_validate(a) for a in chain.actions],
            boundary,
            execution_mode=ExecutionMode(chain.execution_mode),
            chain_id=chain.id,
            store=repo,
        )
        order = body.action_order
        form_data = body.parameters
        stored = executor.action(order)
        if stored.dapp_id != body.dapp_id or stored.action_type != body.action_type:
            raise ActionStateError(
                f"Action {order} of chain {chain.id} is {stored.action_type} on {stored.dapp_id}, "
                f"not {body.action_type} on {body.dapp_id}"
            )
    else:
        executor = ActionChainExecutor([_standalone_action(dapp, body)], boundary)
        order = 1
        form_data = None

    try:
        result = await executor.execute_action(order, form_data)
    except ActionExecutionFailed:
        # keep the recorded failure; the session dependency rolls back on raise
        await session.commit()
        raise

    action = executor.action(order)
    logger.info(f"Executed {action.action_type} on {action.dapp_name} (chain={executor.chain_id})")
    return ExecuteActionResponse(
        chain_id=executor.chain_id,
        action_order=order,
        action_type=action.action_type,
        dapp_id=action.dapp_id,
        dapp_name=action.dapp_name,
        result=result,
        chain_status=executor.status.value if executor.chain_id else None,
    )


@router.get("/chains/{chain_id}", response_model=ChainOut)
async def get_chain(chain_id: str, session: SessionDep) -> ChainOut:
    chain = await _load_chain(ActionChainRepo(session), chain_id)
    return ChainOut(
        id=chain.id,
        intent_text=chain.intent_text,
        execution_mode=chain.execution_mode,
        status=chain.status,
        actions=chain.actions,
        created_at=chain.created_at,
        completed_at=chain.completed_at,
    )
