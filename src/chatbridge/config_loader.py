# src/chatbridge/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List
import yaml


class ConfigError(ValueError):
    pass


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    if typ is bool and not isinstance(cur, bool):
        raise ConfigError(f"'{dotted}' must be a boolean")
    if typ is str and not isinstance(cur, str):
        raise ConfigError(f"'{dotted}' must be a string")
    if typ is int and (isinstance(cur, bool) or not isinstance(cur, int)):
        raise ConfigError(f"'{dotted}' must be an integer")
    if typ is float and (isinstance(cur, bool) or not isinstance(cur, (int, float))):
        raise ConfigError(f"'{dotted}' must be a number")
    return cur


def load_config(path: Path, providers: List[str] | None = None) -> Dict[str, Any]:
    """
    providers: registered provider ids; when given, client.provider must be one of them.
    """
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Validate required keys (no defaults here)
    _require(raw, "server.host", str)
    _require(raw, "server.port", int)
    timeout = _require(raw, "gateway.timeout_seconds", float)
    _require(raw, "logging.level", str)
    if timeout <= 0:
        raise ConfigError("'gateway.timeout_seconds' must be positive")

    # Optional client section; normalise the provider id
    client = raw.get("client") or {}
    if not isinstance(client, dict):
        raise ConfigError("'client' must be a mapping")
    if client.get("provider") is not None:
        provider = _require(raw, "client.provider", str).lower()
        if providers is not None and provider not in providers:
            raise ConfigError(f"Unknown client.provider '{provider}' (expected one of {sorted(providers)}).")
        client["provider"] = provider
    if client.get("gateway_url") is not None:
        _require(raw, "client.gateway_url", str)
    raw["client"] = client

    secrets = raw.get("secrets") or {}
    if not isinstance(secrets, dict):
        raise ConfigError("'secrets' must be a mapping")
    raw["secrets"] = secrets
    raw["logging"]["level"] = str(raw["logging"]["level"]).upper()

    return raw
