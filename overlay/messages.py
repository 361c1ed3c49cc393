#!/usr/bin/env python3
"""
messages.py – enkel meldingsbuss

• listen_for(name, handler) registrerer en handler(data, callback).
• send(name, data, callback) leverer meldingen til alle handlere for navnet.
"""

from __future__ import annotations
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

log = logging.getLogger(__name__)

Callback = Optional[Callable[..., None]]
Handler = Callable[[Any, Callback], None]


class MessageBus:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: Dict[str, List[Handler]] = {}

    def listen_for(self, name: str, handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(name, []).append(handler)

    def send(self, name: str, data: Any = None, callback: Callback = None) -> int:
        """Returner antall handlere som mottok meldingen."""
        with self._lock:
            targets = list(self._handlers.get(name, ()))
        if not targets:
            log.warning("No listeners for message %s", name)
            return 0
        for handler in targets:
            try:
                handler(data, callback)
            except Exception:
                log.exception("Handler for message %s failed", name)
        return len(targets)
