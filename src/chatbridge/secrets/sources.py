# src/chatbridge/secrets/sources.py

from __future__ import annotations
from typing import Protocol, Optional, Dict, Iterable, List, Union
import logging
import os

import keyring as _keyring
from keyring.errors import KeyringError

from chatbridge.core.models import ClientSettings

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "chatbridge"
_PROVIDER_ACCOUNT = "provider"


class SecretSource(Protocol):
    def get(self, service: str) -> Optional[str]: ...


class EnvSource:
    def get(self, service: str) -> Optional[str]:
        # Allow mapping to be an explicit env var key OR a service name
        # 1) exact env var name
        val = os.getenv(service)
        if val:
            return val.strip()
        # 2) derived names, e.g. anthropic -> ANTHROPIC_API_KEY
        for key in (f"{service.upper()}_API_KEY", service.upper()):
            val = os.getenv(key)
            if val:
                return val.strip()
        return None


class SystemKeyringSource:
    def get(self, service: str) -> Optional[str]:
        for svc, account in ((KEYRING_SERVICE, _account(service)), (service, "api_key")):
            try:
                val = _keyring.get_password(svc, account)
            except KeyringError as e:
                logger.debug("Keyring lookup failed for %s: %s", svc, type(e).__name__)
                return None
            if val:
                return val.strip()
        return None


_ALLOWED_METHODS = {"env", "keyring"}


def _account(provider: str) -> str:
    return f"{provider.lower()}_api_key"


def _normalise_methods(method: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(method, str):
        methods = [method]
    else:
        methods = list(method)
    norm = []
    for m in methods:
        key = str(m).strip().lower()
        if key not in _ALLOWED_METHODS:
            raise ValueError(f"Unknown secrets method '{m}'. Allowed: {sorted(_ALLOWED_METHODS)}")
        if key not in norm:
            norm.append(key)
    return norm


def build_secret_sources(method: Union[str, Iterable[str]]) -> List[SecretSource]:
    sources: List[SecretSource] = []
    for name in _normalise_methods(method):
        if name == "env":
            sources.append(EnvSource())
        elif name == "keyring":
            sources.append(SystemKeyringSource())
    return sources


class SecretsResolver:
    """
    Resolve a provider's credential using one or more methods in order.
    mapping: per-provider map of names -> service/env-key
      e.g. { "anthropic": { "api_key": "ANTHROPIC_API_KEY" } }
    """
    def __init__(self, method: Union[str, Iterable[str]], mapping: Dict[str, Dict[str, str]] | None = None):
        self._sources = build_secret_sources(method)
        self._map = mapping or {}

    def secret(self, provider: str, name: str = "api_key") -> Optional[str]:
        service = self._map.get(provider, {}).get(name, provider)
        for src in self._sources:
            val = src.get(service)
            if val:
                return val
        return None


class KeyringSettingsStore:
    """
    Remembers the terminal client's provider selection and its key in the OS keyring.
    The gateway never reads from here; it only feeds ClientSettings.
    """
    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def load(self, resolver: Optional[SecretsResolver] = None, *,
             provider: Optional[str] = None,
             default_provider: Optional[str] = None) -> Optional[ClientSettings]:
        """
        provider: explicit choice, wins over the saved one.
        default_provider: used only when nothing was saved.
        Keys come from the keyring first, then from the resolver.
        """
        key = None
        try:
            if not provider:
                provider = _keyring.get_password(self.service, _PROVIDER_ACCOUNT) or default_provider
            if provider:
                key = _keyring.get_password(self.service, _account(provider))
        except KeyringError as e:
            logger.warning("Could not read saved settings from keyring: %s", type(e).__name__)
            provider = provider or default_provider
        if not provider:
            return None
        provider = provider.lower()
        if not key and resolver is not None:
            key = resolver.secret(provider)
        if not key:
            return None
        return ClientSettings(provider_id=provider, credential=key)

    def save(self, settings: ClientSettings) -> bool:
        try:
            _keyring.set_password(self.service, _PROVIDER_ACCOUNT, settings.provider_id)
            _keyring.set_password(self.service, _account(settings.provider_id), settings.credential)
        except KeyringError as e:
            logger.warning("Could not save settings to keyring: %s", type(e).__name__)
            return False
        return True
