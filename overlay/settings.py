# overlay/settings.py
"""
Grunninnstillinger (baner, TZ og polle-intervall).
"""
from __future__ import annotations
import os
from pathlib import Path
from zoneinfo import ZoneInfo

PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIG_PATH = Path(os.environ.get("OVERLAY_CONFIG") or (PROJECT_ROOT / "config.json"))
TZ = ZoneInfo(os.environ.get("OVERLAY_TZ") or "UTC")

# Tracker hentes hvert 60. sekund om ikke config sier noe annet
REFRESH_SECONDS = 60
