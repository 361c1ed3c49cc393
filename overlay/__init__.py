# overlay/__init__.py
from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from flask import Flask, request, Response
from .service import OverlayService
from .storage import load_config
from . import sse


def create_app(cfg: Optional[Dict[str, Any]] = None, *, start: bool = True) -> Flask:
    """
    Bygg Flask-appen og en OverlayService (lagres i app.extensions["overlay"]).
    cfg=None leser config.json; start=False lar tracker-syklusene stå stille (tester).
    """
    app = Flask(__name__)
    if cfg is None:
        cfg = load_config()
    # Modul-loggere (overlay.*) arver nivået fra app-loggeren
    level = str(cfg.get("log_level") or "INFO").strip().upper()
    app.logger.setLevel(level if isinstance(logging.getLevelName(level), int) else logging.INFO)

    service = OverlayService(cfg)
    service.store.on_any_change(sse.publish_replicant)
    app.extensions["overlay"] = service

    # Registrer blueprints fra routes-pakken
    from .routes import pages_bp, api_bp
    app.register_blueprint(pages_bp)
    app.register_blueprint(api_bp)

    @app.after_request
    def apply_common_headers(resp: Response) -> Response:
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        path = (request.path or "").lower()
        if path.startswith("/api/") or path in ("/health", "/state"):
            resp.headers["Cache-Control"] = "no-store"
        return resp

    if start:
        service.start()
    return app
