from .config import SDK_CONFIG, AppConfig, EffectiveSessionConfig, SessionConfig
from .engine import EngineLogLevel, LayoutRegion, MixLayout, RecorderEngine, TokenBuilder

__all__ = [
    "SDK_CONFIG",
    "AppConfig",
    "EffectiveSessionConfig",
    "SessionConfig",
    "EngineLogLevel",
    "LayoutRegion",
    "MixLayout",
    "RecorderEngine",
    "TokenBuilder",
]
