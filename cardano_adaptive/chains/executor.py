"""Action chain executor.

Per action: ``pending → in_progress → completed | failed``; terminal states
are final and failures are never retried.  Dependency and form checks happen
before the transition to ``in_progress``, so a blocked action stays pending.

Chain progression:
  - sequential: ascending ``order``; the first failure halts the run.
  - parallel / mixed: waves.  Every pending action whose dependencies have
    completed runs concurrently; actions behind a failure never start.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from cardano_adaptive.chains.models import ChainStore, EnrichedAction, chain_status
from cardano_adaptive.errors import (
    ActionExecutionFailed,
    ActionStateError,
    DependencyNotResolved,
    FormValidationError,
    NotFound,
)
from cardano_adaptive.execution.boundary import ExecutionBoundary, ExecutionRequest
from cardano_adaptive.nl.params import ActionOutputRef, coerce_params, params_to_wire, resolve_output
from cardano_adaptive.storage.models import ActionStatus, ChainStatus, ExecutionMode
from cardano_adaptive.ui.schema_compiler import default_form_data, validate_form_data

OnComplete = Callable[[list[EnrichedAction]], Awaitable[None]]

# failures that stop one action without corrupting its siblings
_ACTION_FAILURES = (ActionExecutionFailed, DependencyNotResolved, FormValidationError)


@dataclass(slots=True)
class ChainRunReport:
    completed: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    not_started: list[int] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)
    chain_completed: bool = False

    def to_wire(self) -> dict[str, Any]:
        return {
            "completed": self.completed,
            "failed": self.failed,
            "notStarted": self.not_started,
            "errors": {str(k): v for k, v in self.errors.items()},
            "chainCompleted": self.chain_completed,
        }


class ActionChainExecutor:
    def __init__(
        self,
        actions: list[EnrichedAction],
        boundary: ExecutionBoundary,
        *,
        execution_mode: ExecutionMode = ExecutionMode.SEQUENTIAL,
        chain_id: str | None = None,
        store: ChainStore | None = None,
        on_complete: OnComplete | None = None,
    ) -> None:
        self.actions = sorted(actions, key=lambda a: a.order)
        self.execution_mode = execution_mode
        self.chain_id = chain_id
        self._boundary = boundary
        self._store = store
        self._on_complete = on_complete
        self._lock = asyncio.Lock()
        self._completion_signalled = chain_status(self.actions) is ChainStatus.COMPLETED

    @property
    def status(self) -> ChainStatus:
        return chain_status(self.actions)

    def action(self, order: int) -> EnrichedAction:
        for a in self.actions:
            if a.order == order:
                return a
        raise NotFound(f"Action {order} is not part of this chain")

    # ── single action ──────────────────────────────────────────────────────

    def _dependencies(self, action: EnrichedAction, data: dict[str, Any]) -> list[int]:
        deps = {ref.from_action for ref in data.values() if isinstance(ref, ActionOutputRef)}
        if action.depends_on is not None:
            deps.add(action.depends_on)
        return sorted(deps)

    def _completed_result(self, order: int, needed_by: int) -> Any:
        try:
            target = self.action(order)
        except NotFound:
            raise DependencyNotResolved(needed_by, order) from None
        if target.status is not ActionStatus.COMPLETED or target.result is None:
            raise DependencyNotResolved(needed_by, order)
        return target.result

    def _prepare(self, action: EnrichedAction, form_data: dict[str, Any] | None) -> dict[str, Any]:
        """Merge, dereference and validate the submitted data for ``action``.

        Validation sees exactly what was submitted; form defaults only fill
        the optional fields left out once the data is known to be valid.
        """
        data = {**action.params, **coerce_params(form_data)}

        results = {
            dep: self._completed_result(dep, action.order)
            for dep in self._dependencies(action, data)
        }
        for key, value in data.items():
            if isinstance(value, ActionOutputRef):
                data[key] = resolve_output(value, results[value.from_action])

        check = validate_form_data(data, action.ui_schema)
        if not check.valid:
            raise FormValidationError(check.errors)
        return {**default_form_data(action.ui_schema, data), **data}

    async def execute_action(self, order: int, form_data: dict[str, Any] | None = None) -> Any:
        action = self.action(order)
        if action.is_terminal:
            raise ActionStateError(f"Action {order} is already {action.status.value}")
        if action.status is ActionStatus.IN_PROGRESS:
            raise ActionStateError(f"Action {order} is already running")

        data = self._prepare(action, form_data)
        action.status = ActionStatus.IN_PROGRESS
        action.parameters = params_to_wire(data)
        logger.info(f"Executing action {order} ({action.action_type} on {action.dapp_name})")

        request = ExecutionRequest(
            action_type=action.action_type,
            dapp_id=action.dapp_id,
            dapp_name=action.dapp_name,
            parameters=data,
        )
        try:
            outcome = await self._boundary.execute(request)
        except Exception as exc:
            await self._fail(action, str(exc))
            raise ActionExecutionFailed(order, action.action_type, str(exc)) from exc

        if not outcome.success:
            reason = outcome.error or "execution boundary reported failure"
            await self._fail(action, reason)
            raise ActionExecutionFailed(order, action.action_type, reason)

        action.result = outcome.fields
        action.error = None
        action.status = ActionStatus.COMPLETED
        logger.info(f"Action {order} completed")
        await self._persist()
        return action.result

    async def _fail(self, action: EnrichedAction, reason: str) -> None:
        action.error = reason
        action.status = ActionStatus.FAILED
        logger.error(f"Action {action.order} ({action.action_type}) failed: {reason}")
        await self._persist()

    async def _persist(self) -> None:
        async with self._lock:
            status = self.status
            if self._store is not None and self.chain_id is not None:
                await self._store.update_chain(
                    self.chain_id, [a.to_record() for a in self.actions], status,
                )
            fire = status is ChainStatus.COMPLETED and not self._completion_signalled
            if fire:
                self._completion_signalled = True
        if fire:
            logger.info(f"Action chain {self.chain_id or '(unsaved)'} completed")
            if self._on_complete is not None:
                await self._on_complete(self.actions)

    # ── whole chain ────────────────────────────────────────────────────────

    async def _attempt(
        self, action: EnrichedAction, form_data: dict[str, Any] | None, report: ChainRunReport,
    ) -> bool:
        try:
            await self.execute_action(action.order, form_data)
        except _ACTION_FAILURES as exc:
            report.errors[action.order] = str(exc)
            return False
        return True

    async def _run_sequential(self, forms: dict[int, dict[str, Any]], report: ChainRunReport) -> None:
        for action in self.actions:
            if action.status is ActionStatus.COMPLETED:
                continue
            if action.status is ActionStatus.FAILED:
                report.errors.setdefault(action.order, action.error or "failed earlier")
                return
            if not await self._attempt(action, forms.get(action.order), report):
                return

    def _unblocked(self, action: EnrichedAction) -> bool:
        statuses = {a.order: a.status for a in self.actions}
        return all(
            statuses.get(dep) is ActionStatus.COMPLETED
            for dep in self._dependencies(action, action.params)
        )

    async def _run_waves(self, forms: dict[int, dict[str, Any]], report: ChainRunReport) -> None:
        attempted: set[int] = set()
        while True:
            ready = [
                a for a in self.actions
                if a.status is ActionStatus.PENDING
                and a.order not in attempted
                and self._unblocked(a)
            ]
            if not ready:
                return
            attempted.update(a.order for a in ready)
            await asyncio.gather(*(self._attempt(a, forms.get(a.order), report) for a in ready))

    async def run(self, form_data_by_order: dict[int, dict[str, Any]] | None = None) -> ChainRunReport:
        forms = form_data_by_order or {}
        report = ChainRunReport()
        if self.execution_mode is ExecutionMode.SEQUENTIAL:
            await self._run_sequential(forms, report)
        else:
            await self._run_waves(forms, report)

        for a in self.actions:
            if a.status is ActionStatus.COMPLETED:
                report.completed.append(a.order)
            elif a.status is ActionStatus.FAILED:
                report.failed.append(a.order)
            else:
                report.not_started.append(a.order)
        report.chain_completed = self.status is ChainStatus.COMPLETED
        return report
