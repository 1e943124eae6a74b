"""Tests for the relay CLI."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner

from chatwoot_relay.cli import cli
from chatwoot_relay.models import AICallResult

_AI_ENV = {
    "AI_API_URL": "https://dashscope.aliyuncs.com/api/v1/services/aigc/text-generation/generation",
    "AI_API_TOKEN": "secret",
}


def test_providers_lists_registry_and_active() -> None:
    runner = CliRunner()
    with patch.dict("os.environ", _AI_ENV, clear=True):
        result = runner.invoke(cli, ["providers"])
    assert result.exit_code == 0
    output = json.loads(result.output)
    assert output["active"] == "qwen"
    assert {p["key"] for p in output["providers"]} == {
        "openai", "azure", "zhipu", "baidu", "qwen",
    }


def test_ask_prints_result() -> None:
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=AICallResult(success=True, content="pong"))
    runner = CliRunner()
    with patch.dict("os.environ", _AI_ENV, clear=True), \
            patch("chatwoot_relay.cli.AIDispatcher", return_value=dispatcher):
        result = runner.invoke(cli, ["ask", "ping", "--attempts", "2"])

    assert result.exit_code == 0
    assert json.loads(result.output) == {"success": True, "content": "pong"}
    args, kwargs = dispatcher.dispatch.call_args
    assert args[0] == "ping"
    assert kwargs["max_attempts"] == 2


def test_ask_exit_code_on_failure() -> None:
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(
        return_value=AICallResult(success=False, error="Tongyi Qianwen failed after 3 attempts: x"),
    )
    runner = CliRunner()
    with patch.dict("os.environ", _AI_ENV, clear=True), \
            patch("chatwoot_relay.cli.AIDispatcher", return_value=dispatcher):
        result = runner.invoke(cli, ["ask", "ping"])

    assert result.exit_code == 1
    assert "failed after 3 attempts" in result.output


def test_ask_requires_ai_configuration() -> None:
    runner = CliRunner()
    with patch.dict("os.environ", {}, clear=True):
        result = runner.invoke(cli, ["ask", "ping"])
    assert result.exit_code == 2
    assert "AI_API_URL" in result.output


def test_ask_rejects_non_positive_attempts() -> None:
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=AICallResult(success=True, content="pong"))
    runner = CliRunner()
    for attempts in ("0", "-1"):
        with patch.dict("os.environ", _AI_ENV, clear=True), \
                patch("chatwoot_relay.cli.AIDispatcher", return_value=dispatcher):
            result = runner.invoke(cli, ["ask", "ping", "--attempts", attempts])
        assert result.exit_code == 2
        assert "--attempts" in result.output
    dispatcher.dispatch.assert_not_called()
