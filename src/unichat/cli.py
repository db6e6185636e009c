from __future__ import annotations
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .bootstrap import build_app, open_session, resolve_model
from .core.errors import ProviderClientError
from .core.presets import MODEL_PRESETS, get_preset

app = typer.Typer(add_completion=False, help="Chat with any configured LLM provider.")
models_app = typer.Typer(add_completion=False, help="Manage stored model configurations.")
app.add_typer(models_app, name="models")

console = Console()

DEFAULT_CONFIG = Path("config/default.yaml")
ConfigOpt = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="App config YAML")


def _fail(msg: str) -> None:
    console.print(f"[red]{escape(msg)}[/red]", highlight=False)
    raise typer.Exit(1)


@app.command()
def chat(config: Path = ConfigOpt,
         model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id (default: active model)")):
    """Interactive chat with the active (or given) model."""
    ctx = build_app(config)
    try:
        cfg = resolve_model(ctx, model)
    except ProviderClientError as e:
        _fail(str(e))
    session = open_session(ctx, cfg)

    print(f"unichat [{cfg.name}]. Type /help for commands. Ctrl+C stops a reply.")
    while True:
        try:
            user_input = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return

        if not user_input:
            continue
        if user_input in ("/exit", "/quit"):
            print("Bye.")
            return
        if user_input == "/help":
            print("Commands: /help, /model, /exit, /quit")
            continue
        if user_input == "/model":
            print(f"{cfg.name} ({cfg.model_type}, {cfg.model_name or '-'}) -> {cfg.api_url}")
            continue

        try:
            gen = session.run_turn_stream(user_input)
        except ProviderClientError as e:
            print(f"[config] {e}")
            continue
        try:
            for delta in gen:
                if delta.content:
                    print(delta.content, end="", flush=True)
                if delta.error_message:
                    print(f"\n[error] {delta.error_message}", end="")
            print("")
        except KeyboardInterrupt:
            session.cancel()
            gen.close()
            print("\n[stream interrupted]")


@app.command()
def serve(config: Path = ConfigOpt,
          host: str = typer.Option("127.0.0.1", help="Bind address"),
          port: int = typer.Option(8000, help="Port")):
    """Run the HTTP relay (newline-delimited JSON deltas)."""
    from .web.app import run
    run(config=config, host=host, port=port)


@models_app.command("list")
def models_list(config: Path = ConfigOpt):
    ctx = build_app(config)
    store = ctx["store"]
    active = store.active_id()
    table = Table("", "id", "name", "type", "model", "url", "enabled")
    for m in store.list():
        table.add_row("*" if m.id == active else "", m.id, m.name, m.model_type,
                      m.model_name or "-", m.api_url, "yes" if m.enabled else "no")
    console.print(table)


@models_app.command("presets")
def models_presets():
    table = Table("preset", "name", "type", "model", "url")
    for p in MODEL_PRESETS:
        table.add_row(p.id, p.name, p.model_type, p.model_name or "-", p.api_url_placeholder)
    console.print(table)


@models_app.command("add")
def models_add(preset: str = typer.Argument(..., help="Preset id, see 'models presets'"),
               config: Path = ConfigOpt,
               api_key: Optional[str] = typer.Option(None, "--api-key"),
               url: Optional[str] = typer.Option(None, "--url"),
               model_name: Optional[str] = typer.Option(None, "--model-name"),
               activate: bool = typer.Option(False, "--use", help="Make it the active model")):
    p = get_preset(preset)
    if p is None:
        _fail(f"Unknown preset '{preset}'")
    ctx = build_app(config)
    store = ctx["store"]
    overrides = {"apiKey": api_key, "apiUrl": url, "modelName": model_name}
    m = store.add(p.to_fields(**{k: v for k, v in overrides.items() if v}))
    if activate:
        store.set_active(m.id)
    print(m.id)


@models_app.command("use")
def models_use(model_id: str, config: Path = ConfigOpt):
    store = build_app(config)["store"]
    if store.get(model_id) is None:
        _fail(f"No model with id '{model_id}'")
    store.set_active(model_id)
    print(f"Active model: {model_id}")


@models_app.command("remove")
def models_remove(model_id: str, config: Path = ConfigOpt):
    build_app(config)["store"].delete(model_id)
    print(f"Removed {model_id}")


@models_app.command("export")
def models_export(config: Path = ConfigOpt,
                  out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write to file instead of stdout")):
    text = build_app(config)["store"].export_json()
    if out:
        out.write_text(text + "\n", encoding="utf-8")
    else:
        print(text)


@models_app.command("import")
def models_import(path: Path, config: Path = ConfigOpt):
    ok = build_app(config)["store"].import_json(path.read_text(encoding="utf-8"))
    if not ok:
        _fail(f"Could not import models from {path}")
    print("Imported.")
