# File: overlay/storage.py
# Purpose: Config-IO for bundle-innstillinger (tracker + ekstra layouts). Leses én gang ved oppstart.
from __future__ import annotations
import json
import logging
import os
import tempfile
from typing import Any, Dict, List, Tuple
from .settings import CONFIG_PATH, REFRESH_SECONDS

log = logging.getLogger(__name__)

# ── defaults ──────────────────────────────────────────────────────────────────
_DEFAULTS: Dict[str, Any] = {
    "tracker": {
        "enable": False,
        "url": "https://gamesdonequick.com/tracker",
        "event_id": "",
        "refresh_seconds": REFRESH_SECONDS,
        "timeout_seconds": 10,
    },
    # Ekstra layouts legges til etter standardlisten: [{"name": ..., "code": ...}]
    "extra_layouts": [],
    "admin_password": None,
    "log_level": "INFO",
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ── utils ─────────────────────────────────────────────────────────────────────
def get_defaults() -> Dict[str, Any]:
    return json.loads(json.dumps(_DEFAULTS))  # dyp kopi


def _deep_merge(dst: Dict[str, Any], src: Dict[str, Any]) -> Dict[str, Any]:
    for k, v in (src or {}).items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            _deep_merge(dst[k], v)
        else:
            dst[k] = v
    return dst


def _atomic_write(path: str, data: Dict[str, Any]) -> None:
    """Atomisk skriving til path (tmp-fil + os.replace)."""
    dirpath = os.path.dirname(path) or "."
    os.makedirs(dirpath, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".config.", dir=dirpath)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        try:
            if os.path.exists(tmp):
                os.unlink(tmp)
        except OSError:
            pass


def _i(v, d=None):
    if v in (None, ""):
        return d
    try:
        return int(v)
    except (TypeError, ValueError):
        return d


def _b(v, d: bool) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("1", "true", "yes", "y", "on"):
            return True
        if s in ("0", "false", "no", "n", "off"):
            return False
    return d


# ── coerce/validate ───────────────────────────────────────────────────────────
def _coerce(cfg: Dict[str, Any]) -> Dict[str, Any]:
    d = _DEFAULTS["tracker"]
    tr = cfg.get("tracker")
    if not isinstance(tr, dict):
        tr = get_defaults()["tracker"]
    tr["enable"] = _b(tr.get("enable"), d["enable"])
    tr["url"] = str(tr.get("url") or d["url"]).strip().rstrip("/")
    tr["event_id"] = str(tr.get("event_id") if tr.get("event_id") is not None else "").strip()
    refresh = _i(tr.get("refresh_seconds"), d["refresh_seconds"])
    tr["refresh_seconds"] = max(5, min(3600, refresh))
    timeout = _i(tr.get("timeout_seconds"), d["timeout_seconds"])
    tr["timeout_seconds"] = max(1, min(120, timeout))
    cfg["tracker"] = tr

    if not isinstance(cfg.get("extra_layouts"), list):
        cfg["extra_layouts"] = []

    level = str(cfg.get("log_level") or "INFO").strip().upper()
    cfg["log_level"] = level if level in _LOG_LEVELS else "INFO"

    if not cfg.get("admin_password"):
        cfg["admin_password"] = None
    return cfg


def _validate(cfg: Dict[str, Any]) -> Tuple[bool, str]:
    tr = cfg.get("tracker") or {}
    if tr.get("enable"):
        url = tr.get("url") or ""
        if not url.startswith(("http://", "https://")):
            return False, "tracker.url må starte med http:// eller https://"
        if not tr.get("event_id"):
            return False, "tracker.event_id må settes når tracker er aktivert"
    return True, ""


def sanitize_layouts(seq: Any, *, taken: List[str] | None = None) -> List[Dict[str, str]]:
    """
    Filtrer layout-oppføringer fra config.
    Krever ikke-tomme strenger for name og code; koder er unike uten hensyn til store/små bokstaver.
    """
    out: List[Dict[str, str]] = []
    seen = {c.lower() for c in (taken or [])}
    if not isinstance(seq, list):
        return out
    for idx, it in enumerate(seq):
        if not isinstance(it, dict):
            log.warning("Skipping extra layout #%d: not an object", idx)
            continue
        name = it.get("name")
        code = it.get("code")
        if not isinstance(name, str) or not name.strip() or not isinstance(code, str) or not code.strip():
            log.warning("Skipping extra layout #%d: name and code are required", idx)
            continue
        code = code.strip()
        if code.lower() in seen:
            log.warning("Skipping extra layout %r: duplicate code %s", name, code)
            continue
        seen.add(code.lower())
        out.append({"name": name.strip(), "code": code})
    return out


# ── public API ────────────────────────────────────────────────────────────────
def load_config(path: str | None = None) -> Dict[str, Any]:
    path = str(path or CONFIG_PATH)
    if not os.path.exists(path):
        cfg = _coerce(get_defaults())
        _atomic_write(path, cfg)
        return cfg
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError):
        log.exception("Could not read config %s, using defaults", path)
        raw = {}
    cfg = _deep_merge(get_defaults(), raw if isinstance(raw, dict) else {})
    cfg = _coerce(cfg)
    ok, msg = _validate(cfg)
    if not ok:
        log.error("Invalid config %s: %s (tracker disabled)", path, msg)
        cfg["tracker"]["enable"] = False
    return cfg
