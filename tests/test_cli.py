import json

import httpx
from typer.testing import CliRunner

from mailassist import cli
from mailassist import config as config_mod
from mailassist.assistant import Assistant
from mailassist.models import Config

runner = CliRunner()
API_KEY = "sk-test-0123456789abcdef"


def _use_assistant(monkeypatch, handler):
    assistant = Assistant(Config(openai_api_key=API_KEY), transport=httpx.MockTransport(handler))

    class _Factory:
        @staticmethod
        def from_disk():
            return assistant

    monkeypatch.setattr(cli, "Assistant", _Factory)


def test_version():
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert "mailassist v" in result.output


def test_config_update_and_show(tmp_path, monkeypatch):
    monkeypatch.setattr(config_mod, "CONFIG_PATH", tmp_path / "config.conf")

    result = runner.invoke(cli.app, ["config", "--api-key", API_KEY, "--model", "gpt-4o", "--name", "Jane"])
    assert result.exit_code == 0

    loaded = config_mod.load_config()
    assert loaded.openai_api_key == API_KEY
    assert loaded.openai_model == "gpt-4o"
    assert loaded.user_name == "Jane"

    result = runner.invoke(cli.app, ["config", "--show"])
    assert result.exit_code == 0
    assert API_KEY not in result.output
    assert '"openai_model": "gpt-4o"' in result.output


def test_path_prints_config_location(tmp_path, monkeypatch):
    monkeypatch.setattr(config_mod, "CONFIG_PATH", tmp_path / "config.conf")

    result = runner.invoke(cli.app, ["path"])
    assert result.output.strip() == str(tmp_path / "config.conf")


def test_generate_requires_api_key(tmp_path, monkeypatch):
    monkeypatch.setattr(config_mod, "CONFIG_PATH", tmp_path / "config.conf")

    result = runner.invoke(cli.app, ["generate", "hello"])

    assert result.exit_code == 1
    assert "No valid OpenAI API key" in result.output


def test_generate_prints_reply(monkeypatch):
    prompts = []

    def handler(request):
        prompts.append(json.loads(request.content)["messages"][1]["content"])
        return httpx.Response(200, json={"choices": [{"message": {"content": " Hi Bob! "}}]})

    _use_assistant(monkeypatch, handler)

    result = runner.invoke(cli.app, ["generate"], input="Greet Bob")

    assert result.exit_code == 0
    assert result.output.strip() == "Hi Bob!"
    assert prompts == ["Greet Bob"]


def test_generate_reads_file_with_marker(tmp_path, monkeypatch):
    prompts = []

    def handler(request):
        prompts.append(json.loads(request.content)["messages"][1]["content"])
        return httpx.Response(200, json={"choices": [{"message": {"content": "Will do."}}]})

    _use_assistant(monkeypatch, handler)
    draft = tmp_path / "draft.txt"
    draft.write_text("/aw: confirm the order\n\n> Original message")

    result = runner.invoke(cli.app, ["generate", "--file", str(draft), "--marker"])

    assert result.exit_code == 0
    assert prompts == ["confirm the order"]


def test_generate_reports_failure(monkeypatch):
    _use_assistant(monkeypatch, lambda request: httpx.Response(500, json={"error": {"message": "server exploded"}}))

    result = runner.invoke(cli.app, ["generate", "hello"])

    assert result.exit_code == 1
    assert "Failed to generate response" in result.output
    assert "server exploded" in result.output


def test_models_falls_back_without_key(tmp_path, monkeypatch):
    monkeypatch.setattr(config_mod, "CONFIG_PATH", tmp_path / "config.conf")

    result = runner.invoke(cli.app, ["models"])

    assert result.exit_code == 0
    assert "built-in list" in result.output
    assert "* gpt-4o-mini" in result.output


def test_generate_rejects_undecodable_file(tmp_path, monkeypatch):
    calls = []
    _use_assistant(monkeypatch, lambda request: calls.append(request) or httpx.Response(500))
    draft = tmp_path / "draft.txt"
    draft.write_bytes(b"\xff\xfe\x00broken")

    result = runner.invoke(cli.app, ["generate", "--file", str(draft)])

    assert result.exit_code == 1
    assert "not UTF-8" in result.output
    assert calls == []
