"""Hand-off file read by the native engine when it joins a channel."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from core.errors import SessionCreationError

CFG_FILENAME = "cfg.json"
# Key read by the native engine; must not change.
RECORDING_DIR_KEY = "Recording_Dir"


def write_session_config(record_path: Path) -> Path:
    """Write ``cfg.json`` into ``record_path`` and return its path.

    The file holds exactly ``{"Recording_Dir": "<absolute record path>"}``.
    """

    record_path = Path(record_path)
    cfg_path = record_path / CFG_FILENAME
    payload = {RECORDING_DIR_KEY: str(record_path)}
    try:
        with cfg_path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, separators=(",", ":"))
    except OSError as exc:
        raise SessionCreationError(f"cannot write {cfg_path}: {exc}", path=cfg_path) from exc
    logger.debug(f"wrote engine config {cfg_path}")
    return cfg_path


__all__ = ["CFG_FILENAME", "RECORDING_DIR_KEY", "write_session_config"]
