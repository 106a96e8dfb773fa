import re

from cardano_adaptive.execution.boundary import ExecutionOutcome, ExecutionRequest
from cardano_adaptive.execution.mock import MockExecutionBoundary, mock_swap_output


def _request(action_type: str, **parameters: object) -> ExecutionRequest:
    return ExecutionRequest(
        action_type=action_type,
        dapp_id="minswap-mainnet",
        dapp_name="Minswap",
        parameters=dict(parameters),
    )


def test_mock_swap_output_applies_rate_and_fee() -> None:
    assert mock_swap_output(100) == "151.544000"


async def test_swap_result_fields() -> None:
    outcome = await MockExecutionBoundary().execute(
        _request("swap", fromToken="ADA", toToken="DJED", amount="100"),
    )

    assert outcome.success
    assert outcome.fields["outputAmount"] == "151.544000"
    assert outcome.fields["inputToken"] == "ADA"
    assert outcome.fields["dapp"] == "Minswap"
    assert re.fullmatch(r"[0-9a-f]{64}", outcome.fields["transactionHash"])


async def test_non_numeric_amount_fails_without_raising() -> None:
    outcome = await MockExecutionBoundary().execute(_request("swap", amount="lots"))

    assert not outcome.success
    assert "not a number" in outcome.error


async def test_unknown_action_uses_fallback() -> None:
    outcome = await MockExecutionBoundary().execute(_request("balance", address="addr1"))

    assert outcome.success
    assert outcome.fields["type"] == "balance"
    assert outcome.fields["params"] == {"address": "addr1"}


async def test_registered_handler_overrides_default() -> None:
    boundary = MockExecutionBoundary()
    boundary.register("stake", lambda req: {"apy": 99.0})

    outcome = await boundary.execute(_request("stake", amount="1"))

    assert outcome.fields["apy"] == 99.0


def test_outcome_constructors() -> None:
    assert ExecutionOutcome.failed("boom") == ExecutionOutcome(success=False, error="boom")
    assert ExecutionOutcome.ok(a=1).fields == {"a": 1}
