# config/paths.py
"""
Record directory layout for channel-recorder.

Design goals
- One place that decides where a session's files land on disk
- Honors these env vars (matching the SDK):
    CHANREC_OUTPUT_ROOT, CHANREC_BINARY_DIR
- Path computation is pure; directory creation is a separate, explicit step
- Directory creation failures surface as SessionCreationError
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Union

from loguru import logger

from core.errors import ConfigurationError, SessionCreationError

DEFAULT_OUTPUT_ROOT = "output"
DEFAULT_BINARY_DIR = "bin"

RecordDirTemplate = Callable[[str, datetime], Union[str, "os.PathLike[str]"]]


# ---------- Environment overrides (aligned with SDK) ----------

def env_or_default_output_root() -> Path:
    return Path(os.getenv("CHANREC_OUTPUT_ROOT", DEFAULT_OUTPUT_ROOT))


def env_or_default_binary_dir() -> Path:
    return Path(os.getenv("CHANREC_BINARY_DIR", DEFAULT_BINARY_DIR))


# ---------- Naming strategy ----------

def default_record_dir_template(channel: str, date: datetime) -> str:
    """
    Default subdirectory for one session:
      2024-01-01/10:00:00 room1
    Two sessions of the same channel started within the same second share it.
    """
    return f"{date:%Y-%m-%d}/{date:%H:%M:%S} {channel}"


# ---------- Resolution ----------

def resolve_record_path(
    output_root: Union[str, Path],
    template: RecordDirTemplate,
    channel: str,
    started_at: datetime,
) -> Path:
    """
    Absolute record directory for (output_root, template, channel, started_at).
    Pure: does not touch the filesystem, so repeated calls agree.
    """
    try:
        sub = template(channel, started_at)
    except Exception as exc:
        raise ConfigurationError(f"record_dir_tmpl failed for channel '{channel}': {exc}") from exc
    if sub is None or str(sub).strip() == "":
        raise ConfigurationError("record_dir_tmpl returned an empty path")
    try:
        sub_path = Path(sub)
    except TypeError as exc:
        raise ConfigurationError(f"record_dir_tmpl must return a path segment, got {sub!r}") from exc
    if sub_path.is_absolute():
        raise ConfigurationError(f"record_dir_tmpl must return a relative path, got {sub_path}")
    return Path(os.path.abspath(Path(output_root) / sub_path))


def ensure_record_dir(path: Path) -> Path:
    """
    Create the record directory (and parents).
    OSError / ValueError (e.g. NUL bytes from a hostile template) -> SessionCreationError.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except (OSError, ValueError) as exc:
        raise SessionCreationError(f"cannot create record directory {path}: {exc}", path=path) from exc
    logger.debug(f"record directory ready: {path}")
    return path


__all__ = [
    "DEFAULT_OUTPUT_ROOT",
    "DEFAULT_BINARY_DIR",
    "RecordDirTemplate",
    "env_or_default_output_root",
    "env_or_default_binary_dir",
    "default_record_dir_template",
    "resolve_record_path",
    "ensure_record_dir",
]
