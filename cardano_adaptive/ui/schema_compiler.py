"""Interface schema compiler.

Turns a dApp interface's stored input/output schemas into a ``UISchema`` that
any renderer can draw as a form, and validates/defaults the data submitted
back through that form.

Schema authors are the internal registry, so compilation never fails: a field
descriptor of an unknown shape degrades to a required text field.
"""

from __future__ import annotations

import json
import math
import re
from enum import Enum
from typing import Any, Protocol

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    TOKEN_SELECTOR = "token-selector"
    ADDRESS = "address"
    CHECKBOX = "checkbox"


class OutputFormat(str, Enum):
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DATE = "date"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldValidation(CamelModel):
    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None

    def is_empty(self) -> bool:
        return all(v is None for v in self.model_dump().values())


class UIFieldSchema(CamelModel):
    name: str
    kind: FieldKind = Field(default=FieldKind.TEXT, alias="type")
    label: str
    required: bool = True
    placeholder: str | None = None
    options: list[str] | None = None
    validation: FieldValidation | None = None
    help_text: str | None = None


class OutputField(CamelModel):
    name: str
    label: str
    format: OutputFormat | None = None


class OutputDisplay(CamelModel):
    fields: list[OutputField] = Field(default_factory=list)


class UISchema(CamelModel):
    title: str
    description: str | None = None
    fields: list[UIFieldSchema] = Field(default_factory=list)
    submit_button_text: str
    output_display: OutputDisplay = Field(default_factory=OutputDisplay)

    def field(self, name: str) -> UIFieldSchema | None:
        return next((f for f in self.fields if f.name == name), None)


class ValidationResult(CamelModel):
    valid: bool
    errors: dict[str, str] = Field(default_factory=dict)


class InterfaceLike(Protocol):
    """Anything carrying a stored interface: ORM rows and registry snapshots alike."""

    action_type: str
    input_schema: Any
    output_schema: Any
    example_usage: str | None


# ---------------------------------------------------------------------------
# labels
# ---------------------------------------------------------------------------

_CAPITAL = re.compile(r"([A-Z])")
_WORD_START = re.compile(r"\b\w")


def humanize_label(key: str) -> str:
    """``fromToken`` → ``From Token``, ``max_price`` → ``Max price``."""
    spaced = _CAPITAL.sub(r" \1", key)
    if spaced:
        spaced = spaced[0].upper() + spaced[1:]
    return spaced.replace("_", " ").strip()


def humanize_action_type(action_type: str) -> str:
    """``buy_nft`` → ``Buy Nft``."""
    return _WORD_START.sub(lambda m: m.group(0).upper(), action_type.replace("_", " "))


# ---------------------------------------------------------------------------
# compile
# ---------------------------------------------------------------------------

_EXPLICIT_KINDS: dict[str, FieldKind] = {
    "number": FieldKind.NUMBER,
    "amount": FieldKind.NUMBER,
    "boolean": FieldKind.CHECKBOX,
    "checkbox": FieldKind.CHECKBOX,
    "address": FieldKind.ADDRESS,
    "token": FieldKind.TOKEN_SELECTOR,
    "token-selector": FieldKind.TOKEN_SELECTOR,
}


def _load_schema(raw: Any, what: str) -> dict[str, Any]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Stored {what} is not valid JSON; treating as empty")
            return {}
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning(f"Stored {what} is a {type(raw).__name__}, not a mapping; treating as empty")
        return {}
    return raw


def _descriptor(config: Any) -> dict[str, Any]:
    # "rate": "number" is shorthand for {"type": "number"}
    if isinstance(config, dict):
        return config
    if isinstance(config, str):
        return {"type": config}
    return {}


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _length(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _options(config: dict[str, Any]) -> list[str] | None:
    opts = config.get("options")
    if not isinstance(opts, list):
        return None
    return [str(o) for o in opts]


def infer_kind(name: str, config: dict[str, Any]) -> FieldKind:
    declared = str(config.get("type") or "").lower()
    if declared == "select" and _options(config):
        return FieldKind.SELECT
    if declared in _EXPLICIT_KINDS:
        return _EXPLICIT_KINDS[declared]
    lowered = name.lower()
    if "token" in lowered:
        return FieldKind.TOKEN_SELECTOR
    if "address" in lowered:
        return FieldKind.ADDRESS
    return FieldKind.TEXT


def _is_amount(name: str, config: dict[str, Any]) -> bool:
    return str(config.get("type") or "").lower() == "amount" or "amount" in name.lower()


def _validation(name: str, config: dict[str, Any], kind: FieldKind) -> FieldValidation | None:
    declared = config.get("validation")
    source = dict(config)
    if isinstance(declared, dict):
        source.update(declared)

    v = FieldValidation()
    if kind is FieldKind.NUMBER:
        v.min = _number(source.get("min"))
        v.max = _number(source.get("max"))
        if v.min is None and not isinstance(declared, dict) and _is_amount(name, config):
            v.min = 0
    elif kind in (FieldKind.TEXT, FieldKind.ADDRESS):
        v.min_length = _length(source.get("minLength"))
        v.max_length = _length(source.get("maxLength"))
        pattern = source.get("pattern")
        v.pattern = pattern if isinstance(pattern, str) else None
    return None if v.is_empty() else v


def _compile_field(name: str, raw_config: Any) -> UIFieldSchema:
    config = _descriptor(raw_config)
    kind = infer_kind(name, config)
    label = config.get("label")
    help_text = config.get("helpText") or config.get("description")
    placeholder = config.get("placeholder")
    return UIFieldSchema(
        name=name,
        kind=kind,
        label=label if isinstance(label, str) and label else humanize_label(name),
        required=config.get("required") is not False,
        placeholder=placeholder if isinstance(placeholder, str) else None,
        options=_options(config) if kind is FieldKind.SELECT else None,
        validation=_validation(name, config, kind),
        help_text=help_text if isinstance(help_text, str) else None,
    )


def _compile_output(name: str, raw_config: Any) -> OutputField:
    config = raw_config if isinstance(raw_config, dict) else {}
    label = config.get("label")
    fmt: OutputFormat | None = None
    try:
        fmt = OutputFormat(config.get("format"))
    except ValueError:
        pass
    return OutputField(
        name=name,
        label=label if isinstance(label, str) and label else humanize_label(name),
        format=fmt,
    )


def compile_interface(interface: InterfaceLike, dapp_name: str | None = None) -> UISchema:
    """Compile a stored interface into a ``UISchema``.  Pure and idempotent."""
    inputs = _load_schema(interface.input_schema, f"input schema of '{interface.action_type}'")
    outputs = _load_schema(interface.output_schema, f"output schema of '{interface.action_type}'")

    action_label = humanize_action_type(interface.action_type)
    return UISchema(
        title=f"{action_label} on {dapp_name}" if dapp_name else action_label,
        description=interface.example_usage or None,
        fields=[_compile_field(name, cfg) for name, cfg in inputs.items()],
        submit_button_text=action_label,
        output_display=OutputDisplay(
            fields=[_compile_output(name, cfg) for name, cfg in outputs.items()],
        ),
    )


# ---------------------------------------------------------------------------
# validate / defaults
# ---------------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str):
        try:
            n = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(n) else n


def _fmt(bound: float) -> str:
    if isinstance(bound, float) and bound.is_integer():
        return str(int(bound))
    return str(bound)


def _field_error(f: UIFieldSchema, value: Any) -> str | None:
    # one message per field; later checks overwrite earlier ones
    error: str | None = None
    rules = f.validation or FieldValidation()

    if f.kind is FieldKind.NUMBER:
        n = _as_number(value)
        if n is None:
            return f"{f.label} must be a valid number"
        if rules.min is not None and n < rules.min:
            error = f"{f.label} must be at least {_fmt(rules.min)}"
        if rules.max is not None and n > rules.max:
            error = f"{f.label} must be at most {_fmt(rules.max)}"

    elif f.kind in (FieldKind.TEXT, FieldKind.ADDRESS):
        text = str(value)
        if rules.min_length and len(text) < rules.min_length:
            error = f"{f.label} must be at least {rules.min_length} characters"
        if rules.max_length and len(text) > rules.max_length:
            error = f"{f.label} must be at most {rules.max_length} characters"
        if rules.pattern:
            try:
                matched = re.search(rules.pattern, text) is not None
            except re.error:
                logger.warning(f"Ignoring invalid pattern on field '{f.name}': {rules.pattern!r}")
                matched = True
            if not matched:
                error = f"{f.label} format is invalid"

    elif f.kind is FieldKind.SELECT and f.options:
        if str(value) not in f.options:
            error = f"{f.label} must be one of: {', '.join(f.options)}"

    return error


def validate_form_data(data: dict[str, Any], schema: UISchema) -> ValidationResult:
    errors: dict[str, str] = {}
    for f in schema.fields:
        value = data.get(f.name)
        if _is_blank(value):
            if f.required:
                errors[f.name] = f"{f.label} is required"
            continue
        error = _field_error(f, value)
        if error:
            errors[f.name] = error
    return ValidationResult(valid=not errors, errors=errors)


def default_form_data(
    schema: UISchema, initial_values: dict[str, Any] | None = None,
) -> dict[str, Any]:
    initial = initial_values or {}
    data: dict[str, Any] = {}
    for f in schema.fields:
        if initial.get(f.name) is not None:
            data[f.name] = initial[f.name]
        elif f.kind is FieldKind.CHECKBOX:
            data[f.name] = False
        elif f.kind is FieldKind.NUMBER:
            data[f.name] = (f.validation.min if f.validation else None) or 0
        elif f.kind is FieldKind.SELECT and f.options:
            data[f.name] = f.options[0]
        else:
            data[f.name] = ""
    return data
