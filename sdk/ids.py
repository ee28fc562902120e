
from __future__ import annotations
import time, ulid
from datetime import datetime
NS_PER_MS = 1_000_000
def now_monotonic_ns() -> int: return time.monotonic_ns()
def elapsed_ms(start_ns: int) -> float: return (now_monotonic_ns() - start_ns) / NS_PER_MS
def now_local() -> datetime: return datetime.now().replace(microsecond=0)
def new_session_id() -> str: return str(ulid.new())
