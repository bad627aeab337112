"""Tests for the command-line entry point."""

from __future__ import annotations

import json

import httpx
import pytest
from click.testing import CliRunner

from helpers import ChunkedByteStream, completion_body, function_call_body, hello_there_stream
from openai_wrapper import cli
from openai_wrapper import config as config_module
from openai_wrapper.llm.client import ChatClient


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setattr(config_module, "_SEARCH_PATHS", [])


def _use_handler(monkeypatch, handler) -> None:
    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        cli, "ChatClient",
        lambda spec: ChatClient(spec, transport=transport, async_transport=transport),
    )


class TestChatCommand:
    def test_missing_api_key(self):
        result = CliRunner().invoke(cli.main, ["chat", "Hi"])
        assert result.exit_code == 2
        assert "No API key" in result.output

    def test_prints_answer(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200, json=completion_body("General Kenobi."))

        _use_handler(monkeypatch, handler)
        result = CliRunner().invoke(
            cli.main, ["chat", "Hello there", "--model", "gpt-4", "--system", "Be brief."],
        )

        assert result.exit_code == 0, result.output
        assert "General Kenobi." in result.output
        assert requests[0]["model"] == "gpt-4"
        assert requests[0]["messages"][0] == {"role": "system", "content": "Be brief."}

    def test_demo_functions(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        bodies = [function_call_body("add", a=9, b=900), completion_body("909")]
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200, json=bodies.pop(0))

        _use_handler(monkeypatch, handler)
        result = CliRunner().invoke(cli.main, ["chat", "9 + 900?", "--demo-functions"])

        assert result.exit_code == 0, result.output
        assert [f["name"] for f in requests[0]["functions"]] == ["add", "get_current_weather"]
        assert requests[1]["messages"][-1] == {"role": "function", "name": "add", "content": "909"}

    def test_stream(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        _use_handler(
            monkeypatch,
            lambda request: httpx.Response(200, stream=ChunkedByteStream(hello_there_stream())),
        )
        result = CliRunner().invoke(cli.main, ["chat", "Hi", "--stream"])
        assert result.exit_code == 0, result.output
        assert "Hello there!" in result.output

    def test_api_error_exit_code(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        _use_handler(monkeypatch, lambda request: httpx.Response(500, text="boom"))
        result = CliRunner().invoke(cli.main, ["chat", "Hi"])
        assert result.exit_code == 1
        assert "APIError" in result.output

    def test_stream_with_functions_rejected(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        _use_handler(monkeypatch, lambda request: httpx.Response(500))
        result = CliRunner().invoke(cli.main, ["chat", "Hi", "--stream", "--demo-functions"])
        assert result.exit_code == 1
        assert "ConfigurationError" in result.output
