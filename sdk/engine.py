"""Capability interfaces for the external collaborators.

The recording engine and the token signer are vendor code; this project
only reaches them through the two protocols below.  Concrete
implementations live under ``plugins/`` and are picked by
:data:`sdk.registry.REGISTRY`.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

# Vendor token role for a recorder that only receives streams.
ROLE_SUBSCRIBER = 2


class EngineLogLevel(IntEnum):
    FATAL = 1
    ERROR = 2
    WARN = 3
    NOTICE = 5
    INFO = 6
    DEBUG = 7


@runtime_checkable
class RecorderEngine(Protocol):
    """One live handle on the native recording engine."""

    def set_log_level(self, level: int) -> None: ...

    def on(self, name: str, handler: Callable[..., None]) -> None: ...

    def join_channel(
        self,
        app_id: str,
        token: str,
        channel: str,
        account: str,
        binary_dir: str,
        cfg_path: str,
    ) -> None: ...

    def leave_channel(self) -> None: ...

    def release(self) -> None: ...

    def set_mix_layout(self, layout: Dict[str, Any]) -> None: ...


@runtime_checkable
class TokenBuilder(Protocol):
    """Builds the signed join token; the signing scheme stays with the vendor."""

    def build(
        self,
        app_id: str,
        certificate: str,
        channel: str,
        account: str,
        role: int = ROLE_SUBSCRIBER,
        expire_at: int = 0,
    ) -> str: ...


# ---------------------------------------------------------------------------
# Video mixing layout
# ---------------------------------------------------------------------------


class LayoutRegion(BaseModel):
    """One participant tile; coordinates are relative to the canvas (0..1)."""

    model_config = ConfigDict(populate_by_name=True)

    uid: Union[int, str]
    x: float = Field(0.0, ge=0.0, le=1.0)
    y: float = Field(0.0, ge=0.0, le=1.0)
    width: float = Field(1.0, ge=0.0, le=1.0)
    height: float = Field(1.0, ge=0.0, le=1.0)
    alpha: float = Field(1.0, ge=0.0, le=1.0)
    render_mode: int = Field(0, alias="renderMode")


class MixLayout(BaseModel):
    """Canvas description forwarded to the engine's ``setMixLayout``."""

    model_config = ConfigDict(populate_by_name=True)

    canvas_width: int = Field(..., gt=0, alias="canvasWidth")
    canvas_height: int = Field(..., gt=0, alias="canvasHeight")
    background_color: str = Field("#000000", alias="backgroundColor")
    regions: List[LayoutRegion] = Field(default_factory=list)
    app_data: Optional[str] = Field(None, alias="appData")

    def to_native(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["regionCount"] = len(self.regions)
        if self.app_data is not None:
            data["appDataLength"] = len(self.app_data)
        return data


LayoutLike = Union[MixLayout, Dict[str, Any]]


def layout_to_native(layout: LayoutLike) -> Dict[str, Any]:
    """Plain dicts are forwarded unchanged; models are dumped with vendor keys."""

    if isinstance(layout, MixLayout):
        return layout.to_native()
    return dict(layout)


__all__ = [
    "ROLE_SUBSCRIBER",
    "EngineLogLevel",
    "RecorderEngine",
    "TokenBuilder",
    "LayoutRegion",
    "MixLayout",
    "LayoutLike",
    "layout_to_native",
]
