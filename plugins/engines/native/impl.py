from __future__ import annotations
import os
from importlib import import_module
from typing import Any, Callable, Dict, Optional

from core.errors import ConfigurationError


class NativeRecorderEngine:
    """Vendor recording engine loaded from its Python extension module.

    Module and class come from CHANREC_NATIVE_MODULE / CHANREC_NATIVE_CLASS.
    Implements the sdk.engine.RecorderEngine contract by forwarding to the
    vendor's camelCase methods.
    """
    def __init__(self, module: Optional[str] = None, cls: Optional[str] = None):
        self.module_name = module or os.getenv("CHANREC_NATIVE_MODULE", "agora_recorder_sdk")
        self.class_name = cls or os.getenv("CHANREC_NATIVE_CLASS", "AgoraRecorderSdk")
        try:
            native_cls = getattr(import_module(self.module_name), self.class_name)
        except (ImportError, AttributeError) as exc:
            raise ConfigurationError(
                f"native recording engine '{self.module_name}:{self.class_name}' is not available: {exc}"
            ) from exc
        self._sdk = native_cls()

    def set_log_level(self, level: int) -> None:
        self._sdk.setLogLevel(int(level))

    def on(self, name: str, handler: Callable[..., None]) -> None:
        self._sdk.on(name, handler)

    def join_channel(self, app_id: str, token: str, channel: str, account: str,
                     binary_dir: str, cfg_path: str) -> None:
        self._sdk.joinChannel(app_id, token, channel, account, binary_dir, cfg_path)

    def leave_channel(self) -> None:
        self._sdk.leaveChannel()

    def release(self) -> None:
        self._sdk.release()

    def set_mix_layout(self, layout: Dict[str, Any]) -> None:
        self._sdk.setMixLayout(layout)
