
from __future__ import annotations
from importlib import import_module
from typing import Any, Dict, Optional

from core.errors import ConfigurationError
from sdk.config import SDK_CONFIG


class Registry:
    """Maps plugin keys ("engine", "token") to ``module.path:Attr`` targets."""

    def __init__(self, defaults: Optional[Dict[str, str]] = None):
        self._map: Dict[str, str] = dict(defaults or {})

    def register(self, key: str, target: str) -> None:
        self._map[key] = target

    def target(self, key: str) -> str:
        return self._map.get(key, key)

    def load(self, key: str) -> Any:
        target = self.target(key)
        mod_path, _, obj = target.partition(":")
        try:
            mod = import_module(mod_path)
            return getattr(mod, obj) if obj else mod
        except (ImportError, AttributeError) as exc:
            raise ConfigurationError(f"cannot load plugin '{key}' from '{target}': {exc}") from exc

    def create(self, key: str, *args, **kwargs):
        return self.load(key)(*args, **kwargs)


REGISTRY = Registry(SDK_CONFIG.plugins)
