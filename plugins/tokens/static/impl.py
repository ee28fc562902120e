from __future__ import annotations
import os
from typing import Optional

from sdk.engine import ROLE_SUBSCRIBER


class StaticTokenBuilder:
    """Hands out one fixed token (CHANREC_STATIC_TOKEN), for projects without certificate checks."""
    def __init__(self, token: Optional[str] = None):
        self.token = token if token is not None else os.getenv("CHANREC_STATIC_TOKEN", "")
        self.requests: list[tuple] = []

    def build(self, app_id: str, certificate: str, channel: str, account: str,
              role: int = ROLE_SUBSCRIBER, expire_at: int = 0) -> str:
        self.requests.append((channel, account, role, expire_at))
        return self.token
