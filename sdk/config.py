
from __future__ import annotations
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from config.paths import (
    default_record_dir_template,
    env_or_default_binary_dir,
    env_or_default_output_root,
)
from core.errors import ConfigurationError
from sdk.engine import EngineLogLevel

DEFAULT_USER_ACCOUNT = "agora-recorder"
DEFAULT_JOIN_TIMEOUT = 5.0


def _env_join_timeout() -> float:
    raw = os.getenv("CHANREC_JOIN_TIMEOUT")
    return float(raw) if raw else DEFAULT_JOIN_TIMEOUT


class AppConfig(BaseModel):
    output_root: Path = Field(default_factory=env_or_default_output_root)
    binary_dir: Path = Field(default_factory=env_or_default_binary_dir)
    join_timeout: float = Field(default_factory=_env_join_timeout)
    default_account: str = DEFAULT_USER_ACCOUNT
    plugins: dict = Field(default_factory=lambda: {
        "engine": os.getenv("CHANREC_ENGINE", "plugins.engines.native.impl:NativeRecorderEngine"),
        "token": os.getenv("CHANREC_TOKEN_BUILDER", "plugins.tokens.vendor.impl:VendorTokenBuilder"),
    })


class SessionConfig(BaseModel):
    """What the caller asks for. Never mutated; see :meth:`resolve`.

    ``join_timeout=None`` means "use the app default", ``0`` disables the
    deadline.  ``timeout_rejects`` turns the deadline from a logged warning
    into a rejection of the join outcome.
    """

    model_config = ConfigDict(frozen=True)

    app_id: SecretStr
    certificate: SecretStr
    channel: str
    user_account: Optional[str] = None
    output_dir: Optional[Path] = None
    record_dir_tmpl: Optional[Callable[[str, datetime], Any]] = None
    log_level: Optional[EngineLogLevel] = None
    binary_dir: Optional[Path] = None
    join_timeout: Optional[float] = Field(None, ge=0)
    timeout_rejects: bool = False

    @field_validator("app_id", "certificate")
    @classmethod
    def _credential_present(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("channel")
    @classmethod
    def _channel_present(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @classmethod
    def build(cls, data: Union["SessionConfig", Mapping[str, Any]]) -> "SessionConfig":
        """Validate ``data``; any problem becomes :class:`ConfigurationError`."""

        if isinstance(data, cls):
            return data
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
            raise ConfigurationError(f"invalid session config: {fields}", exc.errors()) from None
        except TypeError as exc:
            raise ConfigurationError(f"invalid session config: {exc}") from None

    def resolve(self, app: Optional[AppConfig] = None) -> "EffectiveSessionConfig":
        app = app or SDK_CONFIG
        timeout = app.join_timeout if self.join_timeout is None else self.join_timeout
        return EffectiveSessionConfig(
            app_id=self.app_id,
            certificate=self.certificate,
            channel=self.channel,
            user_account=self.user_account or app.default_account,
            output_dir=self.output_dir or app.output_root,
            record_dir_tmpl=self.record_dir_tmpl or default_record_dir_template,
            log_level=self.log_level,
            binary_dir=Path(os.path.abspath(self.binary_dir or app.binary_dir)),
            join_timeout=timeout or None,
            timeout_rejects=self.timeout_rejects,
        )


class EffectiveSessionConfig(BaseModel):
    """Fully defaulted configuration a session actually runs with."""

    model_config = ConfigDict(frozen=True)

    app_id: SecretStr
    certificate: SecretStr
    channel: str
    user_account: str
    output_dir: Path
    record_dir_tmpl: Callable[[str, datetime], Any]
    log_level: Optional[EngineLogLevel] = None
    binary_dir: Path
    join_timeout: Optional[float] = None
    timeout_rejects: bool = False


SDK_CONFIG = AppConfig()
