from __future__ import annotations
from typing import Callable, Dict, List, Type
from importlib import import_module


class ProviderRegistry:
    _classes: Dict[str, Type] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[Type], Type]:
        name = name.lower()
        def deco(klass: Type) -> Type:
            cls._classes[name] = klass
            return klass
        return deco

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._classes)

    @classmethod
    def adapters(cls) -> Dict[str, object]:
        """
        One shared instance per registered adapter, keyed by provider id.
        Adapters are stateless, so the gateway builds this map once.
        """
        cls.ensure_imports()
        return {name: klass() for name, klass in cls._classes.items()}

    @classmethod
    def ensure_imports(cls) -> None:
        """
        Import built-in adapters so their @register decorators run.
        """
        import_module("chatbridge.providers.anthropic_adapter")
        import_module("chatbridge.providers.openai_adapter")
