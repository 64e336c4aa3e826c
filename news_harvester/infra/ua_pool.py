"""User-Agent pool used to make page fetches look like a browser."""

from __future__ import annotations

import random
from threading import Lock
from typing import Iterable, List

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0 Safari/537.36"
)


class UserAgentPool:
    """Return random user agents from a configured list, shared across worker threads."""

    def __init__(self, user_agents: Iterable[str] | None = None, default: str = DEFAULT_USER_AGENT) -> None:
        self._lock = Lock()
        self._default = default
        self._uas: List[str] = []
        if user_agents:
            self._uas.extend(ua.strip() for ua in user_agents if ua.strip())

    def get(self) -> str:
        with self._lock:
            if not self._uas:
                return self._default
            return random.choice(self._uas)


__all__ = ["DEFAULT_USER_AGENT", "UserAgentPool"]
