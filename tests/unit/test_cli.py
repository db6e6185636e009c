# tests/unit/test_cli.py

from __future__ import annotations
import json
import sys
from pathlib import Path
import httpx
from typer.testing import CliRunner

# Ensure "src" is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import unichat.cli as cli
from unichat.cli import app  # Typer app


def _write_config(tmp_path: Path) -> Path:
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir(parents=True)
    cfg = cfg_dir / "default.yaml"
    cfg.write_text(
        """
store:
  path: ../data/store.json
runtime:
  timeout: 5
logging:
  level: WARNING
secrets:
  method: env
""",
        encoding="utf-8",
    )
    return cfg


def _mock_client(monkeypatch, handler):
    real = cli.build_app

    def fake_build_app(config, **kw):
        ctx = real(config, **kw)
        ctx["client"] = httpx.Client(transport=httpx.MockTransport(handler))
        return ctx

    monkeypatch.setattr(cli, "build_app", fake_build_app)


def _sse_reply(*texts) -> bytes:
    chunks = [{"choices": [{"delta": {"content": t}, "finish_reason": None}]} for t in texts]
    chunks.append({"choices": [{"delta": {}, "finish_reason": "stop"}]})
    return ("".join(f"data: {json.dumps(c)}\n\n" for c in chunks) + "data: [DONE]\n\n").encode()


def test_models_add_use_export(tmp_path: Path):
    cfg = _write_config(tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["models", "add", "openai-gpt4", "--config", str(cfg), "--api-key", "sk-x"],
                           catch_exceptions=False)
    assert result.exit_code == 0
    model_id = result.output.strip().splitlines()[-1]
    assert model_id.startswith("model-")
    # store path resolves relative to the config file
    assert (tmp_path / "data" / "store.json").exists()

    result = runner.invoke(app, ["models", "use", model_id, "--config", str(cfg)])
    assert result.exit_code == 0 and model_id in result.output

    out = tmp_path / "export.json"
    result = runner.invoke(app, ["models", "export", "--config", str(cfg), "--out", str(out)])
    assert result.exit_code == 0
    exported = json.loads(out.read_text(encoding="utf-8"))
    assert exported[0]["apiKey"] == "***"
    assert exported[0]["modelName"] == "gpt-4"

    result = runner.invoke(app, ["models", "list", "--config", str(cfg)])
    assert result.exit_code == 0


def test_models_errors(tmp_path: Path):
    cfg = _write_config(tmp_path)
    runner = CliRunner()
    assert runner.invoke(app, ["models", "add", "no-such-preset", "--config", str(cfg)]).exit_code == 1
    assert runner.invoke(app, ["models", "use", "model-0-none", "--config", str(cfg)]).exit_code == 1

    bad = tmp_path / "bad.json"
    bad.write_text('{"not": "a list"}', encoding="utf-8")
    assert runner.invoke(app, ["models", "import", str(bad), "--config", str(cfg)]).exit_code == 1


def test_models_import_then_remove(tmp_path: Path):
    cfg = _write_config(tmp_path)
    runner = CliRunner()
    src = tmp_path / "models.json"
    src.write_text(json.dumps([{"id": "model-1-abc", "modelType": "gemini",
                                "apiUrl": "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"}]),
                   encoding="utf-8")
    assert runner.invoke(app, ["models", "import", str(src), "--config", str(cfg)]).exit_code == 0
    assert runner.invoke(app, ["models", "remove", "model-1-abc", "--config", str(cfg)]).exit_code == 0
    result = runner.invoke(app, ["models", "export", "--config", str(cfg)])
    assert json.loads(result.output) == []


def test_chat_streams_reply(tmp_path: Path, monkeypatch):
    cfg = _write_config(tmp_path)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=_sse_reply("Hello", " there"))

    _mock_client(monkeypatch, handler)
    runner = CliRunner()
    runner.invoke(app, ["models", "add", "deepseek-coder", "--config", str(cfg), "--api-key", "k", "--use"],
                  catch_exceptions=False)

    result = runner.invoke(app, ["chat", "--config", str(cfg)], input="hello\n/exit\n", catch_exceptions=False)
    assert result.exit_code == 0
    assert "Hello there" in result.output
    assert seen[0]["model"] == "deepseek-coder"
    assert seen[0]["messages"][-1] == {"role": "user", "content": "hello"}


def test_chat_reports_stream_error(tmp_path: Path, monkeypatch):
    cfg = _write_config(tmp_path)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Invalid key"}})

    _mock_client(monkeypatch, handler)
    runner = CliRunner()
    runner.invoke(app, ["models", "add", "openai-gpt35", "--config", str(cfg), "--use"], catch_exceptions=False)
    result = runner.invoke(app, ["chat", "--config", str(cfg)], input="hi\n/quit\n", catch_exceptions=False)
    assert result.exit_code == 0
    assert "[error] HTTP 401: Invalid key" in result.output


def test_chat_without_active_model_fails(tmp_path: Path):
    cfg = _write_config(tmp_path)
    result = CliRunner().invoke(app, ["chat", "--config", str(cfg)], input="/exit\n")
    assert result.exit_code == 1
    assert "No active model" in result.output


def test_chat_reports_unsendable_key_and_keeps_running(tmp_path: Path, monkeypatch):
    cfg = _write_config(tmp_path)

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    _mock_client(monkeypatch, handler)
    runner = CliRunner()
    runner.invoke(app, ["models", "add", "openai-gpt4", "--config", str(cfg), "--api-key", "clé-ü", "--use"],
                  catch_exceptions=False)
    result = runner.invoke(app, ["chat", "--config", str(cfg)], input="hi\n/exit\n", catch_exceptions=False)
    assert result.exit_code == 0
    assert "[config]" in result.output and "non-ASCII" in result.output
    assert "Bye." in result.output
