# overlay/service.py
"""
Toppnivå-objekt som eier replicant-lager, meldingsbuss, layout-velger og tracker-poller.
De to polle-håndtakene lagres her, ikke som globale timere.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from .layouts import LayoutSelector, build_layouts
from .messages import MessageBus
from .replicants import ReplicantStore
from .scheduler import RepeatingTask
from .tracker import BIDS, DONATION_TOTAL, TrackerPoller

log = logging.getLogger(__name__)


class OverlayService:
    def __init__(self, cfg: Dict[str, Any]) -> None:
        self.cfg = cfg
        self.store = ReplicantStore()
        self.bus = MessageBus()
        self.layouts = LayoutSelector(
            self.store, build_layouts(cfg.get("extra_layouts")), bus=self.bus
        )

        tr = cfg.get("tracker") or {}
        self.tracker_enabled = bool(tr.get("enable"))
        self.refresh_seconds = float(tr.get("refresh_seconds") or 60)
        self.tracker: Optional[TrackerPoller] = None
        if self.tracker_enabled:
            self.tracker = TrackerPoller(
                self.store,
                url=tr["url"],
                event_id=tr["event_id"],
                timeout=tr.get("timeout_seconds") or 10,
            )
        else:
            # Verdiene publiseres likevel, med standardverdier
            self.store.declare(DONATION_TOTAL, 0)
            self.store.declare(BIDS, [])

        self.total_task: Optional[RepeatingTask] = None
        self.bids_task: Optional[RepeatingTask] = None

    def start(self) -> None:
        """Start begge tracker-syklusene (kun hvis aktivert i config)."""
        if self.tracker is None:
            log.info("Tracker polling disabled")
            return
        if self.total_task is not None:
            return
        log.info(
            "Polling tracker %s (event %s) every %ss",
            self.tracker.url,
            self.tracker.event_id,
            self.refresh_seconds,
        )
        self.total_task = RepeatingTask(
            self.refresh_seconds, self.tracker.refresh_total, name="tracker-total"
        ).start()
        self.bids_task = RepeatingTask(
            self.refresh_seconds, self.tracker.refresh_bids, name="tracker-bids"
        ).start()

    def stop(self, timeout: Optional[float] = None) -> None:
        for task in (self.total_task, self.bids_task):
            if task is not None:
                task.cancel(timeout)
        self.total_task = None
        self.bids_task = None
        if self.tracker is not None:
            self.tracker.close()
