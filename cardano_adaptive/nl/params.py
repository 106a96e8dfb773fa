"""Action parameter values.

A parameter is either a literal primitive (str / int / float / bool) or an
``ActionOutputRef`` pointing at an earlier action's result.  References have
their own wire shape, ``{"fromAction": 1, "field": "outputAmount"}``, so a
literal string can never be mistaken for one.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

# result fields consulted, in order, when a reference names no field
OUTPUT_FIELD_PRIORITY = ("outputAmount", "amount")


@dataclass(frozen=True, slots=True)
class ActionOutputRef:
    from_action: int
    field: str | None = None

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {"fromAction": self.from_action}
        if self.field:
            out["field"] = self.field
        return out

    @classmethod
    def from_wire(cls, raw: Any) -> ActionOutputRef | None:
        if not isinstance(raw, Mapping):
            return None
        order = raw.get("fromAction")
        if isinstance(order, bool) or not isinstance(order, int):
            return None
        field = raw.get("field")
        return cls(from_action=order, field=field if isinstance(field, str) and field else None)


ParamValue = Union[str, int, float, bool, ActionOutputRef]
Params = dict[str, ParamValue]


def coerce_value(value: Any) -> ParamValue | None:
    if value is None:
        return None
    if isinstance(value, (ActionOutputRef, str, bool, int, float)):
        return value
    ref = ActionOutputRef.from_wire(value)
    if ref is not None:
        return ref
    # nested structures are not part of the parameter vocabulary
    return json.dumps(value, default=str)


def coerce_params(raw: Mapping[str, Any] | None) -> Params:
    """Normalise an untrusted parameter mapping (classifier output, form body)."""
    if not raw:
        return {}
    params: Params = {}
    for key, value in raw.items():
        coerced = coerce_value(value)
        if coerced is not None:
            params[str(key)] = coerced
    return params


def params_to_wire(params: Mapping[str, Any]) -> dict[str, Any]:
    return {
        k: v.to_wire() if isinstance(v, ActionOutputRef) else v
        for k, v in params.items()
    }


def references(params: Mapping[str, Any]) -> list[ActionOutputRef]:
    return [v for v in params.values() if isinstance(v, ActionOutputRef)]


def resolve_output(ref: ActionOutputRef, result: Any) -> Any:
    """Pick the value a reference stands for out of an action's stored result."""
    if not isinstance(result, Mapping):
        return result
    if ref.field and result.get(ref.field) is not None:
        return result[ref.field]
    for key in OUTPUT_FIELD_PRIORITY:
        if result.get(key) is not None:
            return result[key]
    return result
