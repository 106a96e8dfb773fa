from collections.abc import Iterator

import pytest
from typer.testing import CliRunner

from cardano_adaptive import __version__
from cardano_adaptive.cli.commands import app
from cardano_adaptive.settings import get_settings

runner = CliRunner()


@pytest.fixture
def no_credential(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("ADAPTIVE_LLM_API_KEY", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_parse_without_credential_exits_with_category(no_credential: None) -> None:
    result = runner.invoke(app, ["parse", "swap 10 ADA for DJED"])

    assert result.exit_code == 1
    assert "upstream" in result.stdout
