"""Typed failures raised by the intent pipeline.

Every error carries a ``category`` and an HTTP ``status_code`` so the request
boundary can report ``{"error": <category>, "message": ...}`` without knowing
the individual classes.
"""

from __future__ import annotations

from typing import Any


class AdaptiveError(Exception):
    """Base class for all pipeline errors."""

    category: str = "internal"
    status_code: int = 500

    def details(self) -> dict[str, Any]:
        return {}

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.category, "message": str(self), **self.details()}


# ── no-match ──────────────────────────────────────────────────────────────


class NoProviderFound(AdaptiveError):
    category = "no_match"
    status_code = 404

    def __init__(self, action_type: str) -> None:
        super().__init__(f"No active dApp supports action '{action_type}'")
        self.action_type = action_type

    def details(self) -> dict[str, Any]:
        return {"actionType": self.action_type}


class NoInterfaceFound(AdaptiveError):
    category = "no_match"
    status_code = 404

    def __init__(self, dapp_name: str, action_type: str) -> None:
        super().__init__(f"{dapp_name} has no '{action_type}' interface")
        self.dapp_name = dapp_name
        self.action_type = action_type

    def details(self) -> dict[str, Any]:
        return {"actionType": self.action_type, "dapp": self.dapp_name}


class ActionResolutionFailed(AdaptiveError):
    """A classified action could not be matched to any dApp."""

    category = "no_match"
    status_code = 404

    def __init__(
        self,
        action_type: str,
        order: int,
        external_platform: dict[str, str] | None = None,
    ) -> None:
        super().__init__(f"Could not resolve action {order} ('{action_type}') to a dApp")
        self.action_type = action_type
        self.order = order
        self.external_platform = external_platform

    def details(self) -> dict[str, Any]:
        out: dict[str, Any] = {"actionType": self.action_type, "order": self.order}
        if self.external_platform:
            out["externalPlatform"] = self.external_platform
        return out


# ── upstream classifier ───────────────────────────────────────────────────


class ClassificationUnavailable(AdaptiveError):
    category = "upstream"
    status_code = 503


class MalformedResponse(AdaptiveError):
    category = "upstream"
    status_code = 502

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw

    def details(self) -> dict[str, Any]:
        return {"raw": self.raw[:500]}


# ── chain execution ───────────────────────────────────────────────────────


class DependencyNotResolved(AdaptiveError):
    category = "dependency"
    status_code = 409

    def __init__(self, order: int, depends_on: int) -> None:
        super().__init__(
            f"Action {order} needs the output of action {depends_on}, which has not completed"
        )
        self.order = order
        self.depends_on = depends_on

    def details(self) -> dict[str, Any]:
        return {"order": self.order, "dependsOn": self.depends_on}


class ActionStateError(AdaptiveError):
    category = "state"
    status_code = 409


class FormValidationError(AdaptiveError):
    category = "input_validation"
    status_code = 422

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(errors.values()) or "Invalid form data")
        self.errors = errors

    def details(self) -> dict[str, Any]:
        return {"fields": self.errors}


class ActionExecutionFailed(AdaptiveError):
    category = "execution"
    status_code = 502

    def __init__(self, order: int, action_type: str, reason: str) -> None:
        super().__init__(f"Action {order} ('{action_type}') failed: {reason}")
        self.order = order
        self.action_type = action_type
        self.reason = reason

    def details(self) -> dict[str, Any]:
        return {"order": self.order, "actionType": self.action_type}


class NotFound(AdaptiveError):
    category = "not_found"
    status_code = 404
