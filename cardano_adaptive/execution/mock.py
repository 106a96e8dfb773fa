"""Mock execution boundary.

Returns realistic-looking results keyed by action type.  Nothing is built,
signed or submitted.  Result builders live in a registry so a new action type
is one ``register`` call rather than another branch.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from cardano_adaptive.execution.boundary import ExecutionOutcome, ExecutionRequest

ResultBuilder = Callable[[ExecutionRequest], dict[str, Any]]

MOCK_SWAP_RATE = 1.52
MOCK_SWAP_FEE = 0.003
MOCK_STAKE_APY = 4.5
MOCK_LEND_APY = 6.2
MOCK_BORROW_APR = 8.5


def mock_tx_hash() -> str:
    return secrets.token_hex(32)


def _amount(request: ExecutionRequest) -> float:
    raw = request.parameters.get("amount")
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"amount {raw!r} is not a number") from None


def mock_swap_output(amount: float) -> str:
    return f"{amount * MOCK_SWAP_RATE * (1 - MOCK_SWAP_FEE):.6f}"


def _swap(req: ExecutionRequest) -> dict[str, Any]:
    p = req.parameters
    amount = _amount(req)
    return {
        "inputToken": p.get("fromToken") or p.get("token0"),
        "outputToken": p.get("toToken") or p.get("token1"),
        "inputAmount": p.get("amount"),
        "outputAmount": mock_swap_output(amount),
        "rate": MOCK_SWAP_RATE,
        "fee": amount * MOCK_SWAP_FEE,
        "slippage": 0.5,
    }


def _stake(req: ExecutionRequest) -> dict[str, Any]:
    amount = _amount(req)
    return {
        "token": req.parameters.get("token") or "ADA",
        "amount": req.parameters.get("amount"),
        "apy": MOCK_STAKE_APY,
        "rewards": amount * MOCK_STAKE_APY / 100 / 365,
    }


def _unstake(req: ExecutionRequest) -> dict[str, Any]:
    return {
        "token": req.parameters.get("token") or "ADA",
        "amount": req.parameters.get("amount"),
    }


def _lend(req: ExecutionRequest) -> dict[str, Any]:
    return {
        "token": req.parameters.get("token"),
        "amount": req.parameters.get("amount"),
        "apy": MOCK_LEND_APY,
    }


def _borrow(req: ExecutionRequest) -> dict[str, Any]:
    return {
        "token": req.parameters.get("token"),
        "amount": req.parameters.get("amount"),
        "collateral": req.parameters.get("collateral"),
        "apr": MOCK_BORROW_APR,
    }


def _nft_buy(req: ExecutionRequest) -> dict[str, Any]:
    p = req.parameters
    return {
        "nftId": p.get("nftId") or "mock-nft-123",
        "price": p.get("price") or p.get("maxPrice"),
    }


def _fallback(req: ExecutionRequest) -> dict[str, Any]:
    return {"params": dict(req.parameters)}


DEFAULT_HANDLERS: dict[str, ResultBuilder] = {
    "swap": _swap,
    "stake": _stake,
    "unstake": _unstake,
    "lend": _lend,
    "borrow": _borrow,
    "nft-buy": _nft_buy,
}


class MockExecutionBoundary:
    def __init__(self, handlers: dict[str, ResultBuilder] | None = None) -> None:
        self._handlers: dict[str, ResultBuilder] = dict(DEFAULT_HANDLERS)
        if handlers:
            self._handlers.update(handlers)

    def register(self, action_type: str, builder: ResultBuilder) -> None:
        self._handlers[action_type] = builder

    async def execute(self, request: ExecutionRequest) -> ExecutionOutcome:
        builder = self._handlers.get(request.action_type, _fallback)
        try:
            fields = builder(request)
        except ValueError as exc:
            logger.warning(f"Mock {request.action_type} on {request.dapp_name} rejected: {exc}")
            return ExecutionOutcome.failed(str(exc))

        logger.info(f"Mock-executed {request.action_type} on {request.dapp_name}")
        return ExecutionOutcome.ok(
            success=True,
            type=request.action_type,
            dapp=request.dapp_name,
            **fields,
            transactionHash=mock_tx_hash(),
            timestamp=datetime.now(tz=UTC).isoformat(),
        )
