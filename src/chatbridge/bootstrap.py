from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

from .config_loader import load_config
from .core.gateway import Gateway
from .core.chat_session import ChatSession
from .logging_setup import configure_logging
from .providers.registry import ProviderRegistry
from .secrets.sources import KeyringSettingsStore, SecretsResolver
from .storage.conversation import ConversationStore
from .web.client import RemoteGateway


def build_app(config_path: Path) -> Dict[str, Any]:
    """
    Composition root: load .env + YAML, configure logging, build the gateway
    and the credential resolver.
    Returns: dict with cfg, gateway, secrets.
    """
    load_dotenv()
    ProviderRegistry.ensure_imports()  # make sure built-ins register
    cfg = load_config(config_path, providers=ProviderRegistry.names())
    configure_logging(cfg["logging"]["level"])

    gateway = Gateway(timeout=float(cfg["gateway"]["timeout_seconds"]))

    secrets_cfg = cfg.get("secrets") or {}
    resolver = SecretsResolver(
        method=secrets_cfg.get("method", "env"),
        mapping=secrets_cfg.get("mapping", {}),
    )

    return {"cfg": cfg, "gateway": gateway, "secrets": resolver}


def build_session(
    ctx: Dict[str, Any],
    *,
    provider: Optional[str] = None,
    gateway_url: Optional[str] = None,
    settings_store: Optional[KeyringSettingsStore] = None,
) -> ChatSession:
    """
    Client side: pick the backend (in-process or remote) and restore settings
    from the keyring, falling back to the configured provider and its resolved key.
    """
    cfg = ctx["cfg"]
    url = gateway_url or cfg["client"].get("gateway_url")
    if url:
        backend = RemoteGateway(url, timeout=float(cfg["gateway"]["timeout_seconds"]))
    else:
        backend = ctx["gateway"]

    store = settings_store or KeyringSettingsStore()
    settings = store.load(
        ctx["secrets"],
        provider=provider,
        default_provider=cfg["client"].get("provider"),
    )
    return ChatSession(backend=backend, store=ConversationStore(settings=settings))
