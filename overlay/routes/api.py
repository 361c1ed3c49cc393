# File: overlay/routes/api.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict
from flask import Blueprint, request, jsonify, Response, current_app
from ..settings import TZ
from ..auth import require_password
from ..layouts import ACTIVE_RUN, CHANGE_LAYOUT_MESSAGE, CURRENT_LAYOUT, LAYOUTS
from ..service import OverlayService
from ..sse import sse_stream
from ..tracker import BIDS, DONATION_TOTAL

bp = Blueprint("api", __name__, url_prefix="/api")

# ── utils ──────────────────────────────────────────────────────────────────────
def _now_iso() -> str:
    return datetime.now(TZ).isoformat()

def _service() -> OverlayService:
    return current_app.extensions["overlay"]

def _json_ok(payload: Dict[str, Any], status: int = 200) -> Response:
    resp = jsonify({"ok": True, "server_time": _now_iso(), **payload})
    resp.status_code = status
    resp.headers["Cache-Control"] = "no-store"
    return resp

def _json_err(
    message: str,
    *,
    status: int = 400,
    code: str | None = None,
    extra: Dict[str, Any] | None = None,
) -> Response:
    data = {"ok": False, "error": message, "server_time": _now_iso()}
    if code:
        data["code"] = code
    if extra:
        data.update(extra)
    resp = jsonify(data)
    resp.status_code = status
    resp.headers["Cache-Control"] = "no-store"
    return resp

def _is_json_request() -> bool:
    ctype = (request.headers.get("Content-Type") or "").lower()
    return "application/json" in ctype or request.is_json

# ── replicants ─────────────────────────────────────────────────────────────────
@bp.get("/replicants/<name>")
def api_get_replicant(name: str) -> Response:
    store = _service().store
    if not store.declared(name):
        return _json_err(f"unknown replicant {name}", status=404, code="not_found")
    return _json_ok({"name": name, "value": store.get(name)})

@bp.get("/stream")
def api_stream() -> Response:
    return sse_stream(_service().store.snapshot)

# ── layouts ────────────────────────────────────────────────────────────────────
@bp.get("/layouts")
def api_layouts() -> Response:
    store = _service().store
    return _json_ok({"layouts": store.get(LAYOUTS), "current": store.get(CURRENT_LAYOUT)})

@bp.post("/layout")
@require_password
def api_change_layout() -> Response:
    """
    Manuelt layout-bytte via meldingen changeGameLayout.
    Body: {"code": "16_9"}
    """
    if not _is_json_request():
        return _json_err(
            "expected application/json", status=415, code="unsupported_media_type"
        )
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return _json_err(
            "payload must be a JSON object", status=400, code="bad_request"
        )
    code = data.get("code")
    done = {"changed": False}

    def _ack() -> None:
        done["changed"] = True

    _service().bus.send(CHANGE_LAYOUT_MESSAGE, code, _ack)
    if not done["changed"]:
        return _json_err(
            f"unknown layout code {code!r}",
            status=404,
            code="unknown_layout",
            extra={"layout_code": code},
        )
    return _json_ok({"current": _service().store.get(CURRENT_LAYOUT)})

@bp.post("/active-run")
@require_password
def api_set_active_run() -> Response:
    """
    Oppdater aktivt løp (runDataActiveRun). Body: løpsobjekt eller null.
    Layout-velgeren reagerer på endringen.
    """
    if not _is_json_request():
        return _json_err(
            "expected application/json", status=415, code="unsupported_media_type"
        )
    data = request.get_json(silent=True)
    if data is not None and not isinstance(data, dict):
        return _json_err(
            "payload must be a JSON object or null", status=400, code="bad_request"
        )
    store = _service().store
    try:
        store.set(ACTIVE_RUN, data)
    except Exception:
        current_app.logger.exception("POST /api/active-run failed")
        return _json_err("internal error", status=500, code="internal_error")
    return _json_ok({"run": store.get(ACTIVE_RUN), "current": store.get(CURRENT_LAYOUT)})

# ── tracker ────────────────────────────────────────────────────────────────────
@bp.get("/tracker")
def api_tracker() -> Response:
    service = _service()
    return _json_ok(
        {
            "enabled": service.tracker_enabled,
            "total": service.store.get(DONATION_TOTAL),
            "bids": service.store.get(BIDS),
        }
    )

@bp.post("/tracker/refresh")
@require_password
def api_tracker_refresh() -> Response:
    """Kjør begge syklusene én gang nå (utenom timeren)."""
    service = _service()
    if service.tracker is None:
        return _json_err("tracker is disabled", status=409, code="tracker_disabled")
    try:
        total_ok = service.tracker.refresh_total()
        bids_ok = service.tracker.refresh_bids()
    except Exception:
        current_app.logger.exception("POST /api/tracker/refresh failed")
        return _json_err("internal error", status=500, code="internal_error")
    return _json_ok(
        {
            "total_ok": total_ok,
            "bids_ok": bids_ok,
            "total": service.store.get(DONATION_TOTAL),
            "bids": service.store.get(BIDS),
        }
    )
