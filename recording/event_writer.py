from __future__ import annotations
import json
from pathlib import Path
from typing import IO, Any, Dict
from threading import Lock

from core.bus import EventBus, QueuedSubscriber
from core.events import SessionEvent, event_dump

JOURNAL_FILENAME = "events.jsonl"


class JsonlWriter:
    """
    Append-only JSONL writer with periodic flush.
    Thread-safe within a process.
    """
    def __init__(self, out_path: Path, flush_every: int = 50):
        out_path.parent.mkdir(parents=True, exist_ok=True)
        self._f: IO[str] = out_path.open("a", encoding="utf-8")
        self._n = 0
        self._flush_every = flush_every
        self._lock = Lock()

    def write(self, obj: Dict[str, Any]) -> None:
        line = json.dumps(obj, ensure_ascii=False, default=str)
        with self._lock:
            self._f.write(line + "\n")
            self._n += 1
            if self._n % self._flush_every == 0:
                self._f.flush()

    def close(self):
        with self._lock:
            try:
                self._f.flush()
            finally:
                self._f.close()


class EventJournal:
    """Persist every event of a session bus to ``<record dir>/events.jsonl``.

    Writes happen on a worker thread so the engine's callback thread never
    waits on disk.
    """
    def __init__(self, bus: EventBus, record_path: Path, flush_every: int = 25):
        self.bus = bus
        self.path = Path(record_path) / JOURNAL_FILENAME
        self._writer = JsonlWriter(self.path, flush_every=flush_every)
        self._subscriber = QueuedSubscriber(self._write, name="event-journal")
        bus.subscribe(self._subscriber)

    def _write(self, event: SessionEvent) -> None:
        self._writer.write(event_dump(event))

    def close(self) -> None:
        self.bus.unsubscribe(self._subscriber)
        self._subscriber.close()
        self._writer.close()
