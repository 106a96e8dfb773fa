"""Execution boundary contract.

The chain executor only sees this protocol, so the mock responder can be
replaced by real transaction construction without touching orchestration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class ExecutionRequest:
    action_type: str
    dapp_id: str
    dapp_name: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    success: bool
    fields: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def ok(cls, **fields: Any) -> ExecutionOutcome:
        return cls(success=True, fields=fields)

    @classmethod
    def failed(cls, error: str) -> ExecutionOutcome:
        return cls(success=False, error=error)


class ExecutionBoundary(Protocol):
    async def execute(self, request: ExecutionRequest) -> ExecutionOutcome: ...
