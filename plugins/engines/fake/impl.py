from __future__ import annotations
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple


class FakeRecorderEngine:
    """In-process stand-in for the native engine. Implements RecorderEngine.

    Records every call in ``calls`` and fires callbacks through :meth:`fire`.
    With ``auto_join`` it answers ``join_channel`` with a join-success
    callback after ``join_delay`` seconds (or ``fail_join=(err, stat_code)``
    with an error), which is enough for dry runs of the CLI and API.
    """
    def __init__(self, auto_join: bool = True, join_delay: float = 0.05,
                 fail_join: Optional[Tuple[int, int]] = None):
        self.auto_join = auto_join
        self.join_delay = join_delay
        self.fail_join = fail_join
        self.calls: List[Tuple[str, tuple]] = []
        self.handlers: Dict[str, List[Callable[..., None]]] = {}
        self.released = False

    def set_log_level(self, level: int) -> None:
        self.calls.append(("set_log_level", (level,)))

    def on(self, name: str, handler: Callable[..., None]) -> None:
        self.handlers.setdefault(name, []).append(handler)

    def join_channel(self, app_id: str, token: str, channel: str, account: str,
                     binary_dir: str, cfg_path: str) -> None:
        self.calls.append(("join_channel", (app_id, token, channel, account, binary_dir, cfg_path)))
        if self.auto_join:
            if self.fail_join is not None:
                args: tuple = ("REC_EVENT_ERROR", *self.fail_join)
            else:
                args = ("REC_EVENT_JOIN_CHANNEL", channel, account)
            timer = threading.Timer(self.join_delay, self.fire, args=args)
            timer.daemon = True
            timer.start()

    def leave_channel(self) -> None:
        self.calls.append(("leave_channel", ()))
        if self.auto_join:
            self.fire("REC_EVENT_LEAVE_CHANNEL")

    def release(self) -> None:
        self.calls.append(("release", ()))
        self.released = True

    def set_mix_layout(self, layout: Dict[str, Any]) -> None:
        self.calls.append(("set_mix_layout", (layout,)))

    # Test helpers ------------------------------------------------------
    def fire(self, name: str, *args: Any) -> None:
        for handler in list(self.handlers.get(name, [])):
            handler(*args)

    def called(self, method: str) -> List[tuple]:
        return [args for name, args in self.calls if name == method]
