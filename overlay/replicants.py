# overlay/replicants.py
"""
Replicant-lager: navngitte verdier med endringsvarsling.
- declare(name, default) definerer startverdi.
- set(name, value) lagrer alltid; lyttere kalles (new, old) kun når verdien faktisk endres.
- get(name) gir en dyp kopi, så ingen kan mutere lagret tilstand utenfra.
Lyttere kjøres synkront i skrivende tråd, utenfor låsen.
"""
from __future__ import annotations
import copy
import logging
import threading
from typing import Any, Callable, Dict, List

__all__ = ["ReplicantStore", "Listener"]

log = logging.getLogger(__name__)

Listener = Callable[[Any, Any], None]  # (new, old)
GlobalListener = Callable[[str, Any, Any], None]  # (name, new, old)


class ReplicantStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._global: List[GlobalListener] = []

    def declare(self, name: str, default: Any = None) -> Any:
        """Definer en replicant. Eksisterende verdi beholdes ved ny deklarasjon."""
        with self._lock:
            if name not in self._values:
                self._values[name] = copy.deepcopy(default)
                self._listeners.setdefault(name, [])
            return copy.deepcopy(self._values[name])

    def declared(self, name: str) -> bool:
        with self._lock:
            return name in self._values

    def names(self) -> List[str]:
        with self._lock:
            return list(self._values)

    def get(self, name: str) -> Any:
        with self._lock:
            if name not in self._values:
                raise KeyError(name)
            return copy.deepcopy(self._values[name])

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._values)

    def set(self, name: str, value: Any) -> bool:
        """Erstatt hele verdien. Returnerer True hvis lytterne ble varslet."""
        new = copy.deepcopy(value)
        with self._lock:
            if name not in self._values:
                raise KeyError(name)
            old = self._values[name]
            self._values[name] = new
            if old == new:
                return False
            targets = list(self._listeners.get(name, ()))
            global_targets = list(self._global)
        for fn in targets:
            self._notify(name, lambda: fn(copy.deepcopy(new), copy.deepcopy(old)))
        for gfn in global_targets:
            self._notify(name, lambda: gfn(name, copy.deepcopy(new), copy.deepcopy(old)))
        return True

    def on_change(self, name: str, fn: Listener) -> None:
        with self._lock:
            if name not in self._values:
                raise KeyError(name)
            self._listeners[name].append(fn)

    def on_any_change(self, fn: GlobalListener) -> None:
        with self._lock:
            self._global.append(fn)

    @staticmethod
    def _notify(name: str, call: Callable[[], None]) -> None:
        # En lytter som feiler skal ikke stoppe de andre
        try:
            call()
        except Exception:
            log.exception("Listener for replicant %s failed", name)
