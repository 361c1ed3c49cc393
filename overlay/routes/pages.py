# overlay/routes/pages.py
"""
Helse + øyeblikksbilde av alle replicants.
Bevisst lettvekts; API-ansvar ligger i routes/api.py.
"""
from __future__ import annotations
from flask import Blueprint, Response, current_app, jsonify
bp = Blueprint("pages", __name__)
def _json_nostore(payload, status: int = 200) -> Response:
    """Status-svar skal ikke caches av klient/proxy."""
    resp = jsonify(payload)
    resp.status_code = status
    resp.headers["Cache-Control"] = "no-store"
    return resp
@bp.get("/health")
def health():
    return _json_nostore({"ok": True})
@bp.get("/state")
def state_snapshot():
    service = current_app.extensions["overlay"]
    return _json_nostore(
        {
            "ok": True,
            "tracker_enabled": service.tracker_enabled,
            "replicants": service.store.snapshot(),
        }
    )
