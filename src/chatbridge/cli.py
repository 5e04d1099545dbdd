from __future__ import annotations
import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown

from .bootstrap import build_app, build_session
from .core.chat_session import ChatSession
from .core.errors import SettingsRequiredError
from .core.models import ClientSettings
from .secrets.sources import KeyringSettingsStore

app = typer.Typer(add_completion=False)
console = Console()

DEFAULT_CONFIG = Path("config/default.yaml")

_KEY_HELP = {
    "anthropic": "Get your key at: console.anthropic.com",
    "openai": "Get your key at: platform.openai.com",
}


def _prompt_settings(session: ChatSession, providers: List[str]) -> None:
    current = session.store.settings
    default = current.provider_id if current else providers[0]
    while True:
        provider = typer.prompt(f"Provider ({', '.join(providers)})", default=default).strip().lower()
        if provider in providers:
            break
        console.print(f"Unknown provider '{provider}'.")
    if provider in _KEY_HELP:
        console.print(_KEY_HELP[provider])
    while True:
        key = typer.prompt("API key", hide_input=True).strip()
        if key:
            break
        console.print("Please enter your API key")

    settings = ClientSettings(provider_id=provider, credential=key)
    session.store.update_settings(settings)
    if not KeyringSettingsStore().save(settings):
        console.print("[settings] could not save to keyring; using them for this session only")


@app.command()
def chat(
    config: Path = typer.Option(DEFAULT_CONFIG, help="YAML config file"),
    provider: Optional[str] = typer.Option(None, help="Provider id, overrides the saved one"),
    url: Optional[str] = typer.Option(None, help="Talk to a running gateway instead of in-process"),
):
    """Chat in the terminal."""
    ctx = build_app(config)
    session = build_session(ctx, provider=provider, gateway_url=url)
    providers = ctx["gateway"].providers

    if session.store.settings is None:
        _prompt_settings(session, providers)

    console.print("chatbridge. Type /help for commands. Ctrl+C to quit.")
    while True:
        try:
            user_input = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print("\nBye.")
            return

        if user_input in ("/exit", "/quit"):
            console.print("Bye.")
            return

        if user_input == "/help":
            console.print("Commands: /help, /settings, /reset, /exit, /quit")
            continue

        if user_input == "/settings":
            _prompt_settings(session, providers)
            continue

        if user_input == "/reset":
            session.store.reset()
            console.print("Conversation cleared.")
            continue

        if not user_input:
            continue

        try:
            outcome = asyncio.run(session.send(user_input))
        except KeyboardInterrupt:
            console.print("\n[request cancelled]")
            continue
        except SettingsRequiredError as e:
            console.print(str(e))
            _prompt_settings(session, providers)
            continue

        console.print(Markdown(outcome.reply.content))
        if outcome.needs_settings:
            _prompt_settings(session, providers)


@app.command()
def serve(
    config: Path = typer.Option(DEFAULT_CONFIG, help="YAML config file"),
    host: Optional[str] = typer.Option(None, help="Overrides server.host"),
    port: Optional[int] = typer.Option(None, help="Overrides server.port"),
):
    """Run the HTTP gateway."""
    from .web.app import run

    run(config=config, host=host, port=port)
