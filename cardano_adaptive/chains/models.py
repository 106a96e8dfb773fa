"""Enriched actions and the chain-persistence contract."""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import Field, field_validator

from cardano_adaptive.nl.params import Params, coerce_params, params_to_wire
from cardano_adaptive.registry.resolver import DAppAlternative, SwapQuote
from cardano_adaptive.storage.models import ActionStatus, ChainStatus
from cardano_adaptive.ui.schema_compiler import CamelModel, UISchema

TERMINAL = frozenset({ActionStatus.COMPLETED, ActionStatus.FAILED})


class EnrichedAction(CamelModel):
    """One classified action resolved against the registry.

    ``parameters`` is always held in wire form (references as
    ``{"fromAction": n}`` objects) so the model dumps straight to JSON;
    use ``params`` for the typed view.
    """

    order: int
    action_type: str = Field(alias="type")
    dapp_id: str
    dapp_name: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    confidence: float = 0.0
    depends_on: int | None = None
    output_used_by: list[int] = Field(default_factory=list)
    ui_schema: UISchema
    quote: SwapQuote | None = None
    alternatives: list[DAppAlternative] = Field(default_factory=list)
    status: ActionStatus = ActionStatus.PENDING
    result: Any = None
    error: str | None = None

    @field_validator("parameters", mode="before")
    @classmethod
    def _wire_parameters(cls, value: Any) -> dict[str, Any]:
        return params_to_wire(coerce_params(value))

    @property
    def params(self) -> Params:
        return coerce_params(self.parameters)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def chain_status(actions: list[EnrichedAction]) -> ChainStatus:
    """``completed`` iff every action completed; ``pending`` until one has moved."""
    if actions and all(a.status is ActionStatus.COMPLETED for a in actions):
        return ChainStatus.COMPLETED
    if all(a.status is ActionStatus.PENDING for a in actions):
        return ChainStatus.PENDING
    return ChainStatus.IN_PROGRESS


class ChainStore(Protocol):
    async def create_chain(
        self, intent_text: str, actions: list[dict[str, Any]], execution_mode: str,
    ) -> str: ...

    async def update_chain(
        self, chain_id: str, actions: list[dict[str, Any]], status: ChainStatus,
    ) -> None: ...
