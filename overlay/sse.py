# overlay/sse.py
"""
Server-Sent Events for replicant-endringer.
- Ny klient får først et 'snapshot' av alle replicants, deretter ett 'replicant'-event per endring.
- Hver klient har en bounded kø; full kø betyr at klienten kastes ut og må reconnecte.
- Periodisk 'ping' holder forbindelsen varm gjennom proxyer.
"""
from __future__ import annotations
import json
import queue
import threading
import time
from typing import Any, Callable, Dict, Iterator, List, Optional
from flask import Response, stream_with_context
__all__ = ["publish", "publish_replicant", "sse_stream", "subscriber_count", "format_event"]
_subscribers: List["queue.Queue[Dict]"] = []
_sub_lock = threading.Lock()
_event_id = 0
def _subscribe(maxsize: int = 100) -> "queue.Queue[Dict]":
    q: "queue.Queue[Dict]" = queue.Queue(maxsize=maxsize)
    with _sub_lock:
        _subscribers.append(q)
    return q
def _unsubscribe(q: "queue.Queue[Dict]") -> None:
    with _sub_lock:
        if q in _subscribers:
            _subscribers.remove(q)
def subscriber_count() -> int:
    with _sub_lock:
        return len(_subscribers)
def _next_id() -> int:
    global _event_id
    with _sub_lock:
        _event_id += 1
        return _event_id
# --- public API ---------------------------------------------------------------
def publish(etype: str, data: Dict[str, Any]) -> int:
    """Send et event til alle abonnenter. Returnerer event-id."""
    wire = {"id": _next_id(), "type": etype, "data": {**data, "ts": time.time()}}
    with _sub_lock:
        targets = list(_subscribers)
    for q in targets:
        try:
            q.put_nowait(wire)
        except queue.Full:
            # Treg klient: kast den ut i stedet for å blokkere skriveren
            _unsubscribe(q)
    return wire["id"]
def publish_replicant(name: str, new: Any, old: Any = None) -> None:
    """Lytter for ReplicantStore.on_any_change."""
    publish("replicant", {"name": name, "value": new})
def format_event(wire: Dict) -> str:
    body = json.dumps(wire.get("data", {}), separators=(",", ":"), ensure_ascii=False)
    return f"id: {wire.get('id', 0)}\nevent: {wire.get('type', 'message')}\ndata: {body}\n\n"
def _events(
    snapshot: Optional[Callable[[], Dict[str, Any]]],
    ping_interval: float,
) -> Iterator[str]:
    q = _subscribe()
    try:
        yield "retry: 15000\n\n"
        if snapshot is not None:
            yield format_event({"id": 0, "type": "snapshot", "data": {"replicants": snapshot()}})
        while True:
            try:
                yield format_event(q.get(timeout=ping_interval))
            except queue.Empty:
                yield format_event({"id": 0, "type": "ping", "data": {"ts": time.time()}})
    finally:
        _unsubscribe(q)
# --- stream endpoint ----------------------------------------------------------
def sse_stream(
    snapshot: Optional[Callable[[], Dict[str, Any]]] = None,
    ping_interval: float = 15.0,
) -> Response:
    return Response(
        stream_with_context(_events(snapshot, ping_interval)),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # unbuffer ved evt. proxy
            "Connection": "keep-alive",
        },
    )
