# overlay/tracker.py
"""
Donasjonstotal og åpne bud fra donation-trackeren.
- refresh_total(): <url>/<event_id>?json → 'donationTotal'
- refresh_bids():  <url>/search?event=<id>&type=allbids&state=OPENED → 'bids'
Feil (transport, status != 200, ugyldig JSON) logges; forrige publiserte verdi beholdes.
normalize_bids() er ren og kan testes uten HTTP.
"""
from __future__ import annotations
import logging
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

import requests

from .models import Candidate, ChildCandidate, ParentCandidate
from .replicants import ReplicantStore
from .settings import TZ

__all__ = ["TrackerPoller", "normalize_bids", "parse_candidate", "DONATION_TOTAL", "BIDS"]

log = logging.getLogger(__name__)

DONATION_TOTAL = "donationTotal"
BIDS = "bids"
HIDDEN_STATES = ("DENIED", "PENDING")


# --- parsing ------------------------------------------------------------------
def _float(v: Any) -> float:
    if v in (None, ""):
        return 0.0
    try:
        f = float(v)
    except (TypeError, ValueError):
        return 0.0
    # NaN/inf kan ikke sendes som JSON
    return f if math.isfinite(f) else 0.0


def _is_key(v: Any) -> bool:
    return isinstance(v, (int, str)) and not isinstance(v, bool)


def _epoch_ms(s: Any) -> Optional[int]:
    """ISO-8601 → epoch ms. Naiv tid tolkes i settings.TZ."""
    if not isinstance(s, str) or not s.strip():
        return None
    try:
        dt = datetime.fromisoformat(s.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=TZ)
    return int(dt.timestamp() * 1000)


def parse_candidate(record: Any) -> Union[Candidate, None]:
    """Klassifiser én rå bud-post; None for skjulte eller ubrukelige poster."""
    if not isinstance(record, dict):
        return None
    fields = record.get("fields")
    if not isinstance(fields, dict):
        return None
    if fields.get("state") in HIDDEN_STATES:
        return None
    # pk og parent brukes som oppslagsnøkler
    if not _is_key(record.get("pk")):
        return None

    if fields.get("parent") is not None:
        if not _is_key(fields.get("parent")):
            return None
        return ChildCandidate(
            pk=record.get("pk"),
            parent=fields.get("parent"),
            name=fields.get("name"),
            total=_float(fields.get("total")),
        )

    return ParentCandidate(
        pk=record.get("pk"),
        name=fields.get("name"),
        total=_float(fields.get("total")),
        game=fields.get("speedrun__name"),
        category=fields.get("speedrun__category"),
        # Ingen fallback-tekst når begge er tomme
        description=fields.get("shortdescription") or fields.get("description"),
        end_time=_epoch_ms(fields.get("speedrun__endtime")),
        is_target=bool(fields.get("istarget")),
        goal=_float(fields.get("goal")),
        allow_user_options=bool(fields.get("allowuseroptions")),
    )


def _end_time_key(bid: Dict[str, Any]) -> tuple:
    # Bud uten sluttid havner sist
    end = bid.get("end_time")
    return (end is None, end or 0)


def normalize_bids(records: Iterable[Any]) -> List[Dict[str, Any]]:
    parents: List[ParentCandidate] = []
    children: List[ChildCandidate] = []
    for record in records or ():
        cand = parse_candidate(record)
        if isinstance(cand, ParentCandidate):
            parents.append(cand)
        elif isinstance(cand, ChildCandidate):
            children.append(cand)

    by_id: Dict[Any, Dict[str, Any]] = {}
    for p in parents:
        by_id[p.pk] = p.to_bid()

    for c in children:
        parent = by_id.get(c.parent)
        # Alternativ uten kjent forelder (eller med mål-forelder) droppes stille
        if parent is not None and "options" in parent:
            parent["options"].append(c.to_option())

    out: List[Dict[str, Any]] = []
    for bid in by_id.values():
        if bid.get("options"):
            bid["options"].sort(key=lambda o: o["total"], reverse=True)
        out.append(bid)

    out.sort(key=_end_time_key)
    return out


# --- poller -------------------------------------------------------------------
class TrackerPoller:
    def __init__(
        self,
        store: ReplicantStore,
        *,
        url: str,
        event_id: str,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.store = store
        self.url = url.rstrip("/")
        self.event_id = str(event_id)
        self.timeout = timeout
        # Session tar vare på cookies mellom kall
        self.session = session or requests.Session()
        store.declare(DONATION_TOTAL, 0)
        store.declare(BIDS, [])

    @property
    def total_url(self) -> str:
        return f"{self.url}/{self.event_id}?json"

    @property
    def bids_url(self) -> str:
        return f"{self.url}/search?event={self.event_id}&type=allbids&state=OPENED"

    def _get_json(self, url: str) -> Any:
        resp = self.session.get(url, timeout=self.timeout)
        if resp.status_code != 200:
            raise requests.HTTPError(f"HTTP {resp.status_code} from {url}", response=resp)
        return resp.json()

    def refresh_total(self) -> bool:
        """Returner True når total ble hentet (uavhengig av om den endret seg)."""
        log.debug("Fetching donation total from URL: %s", self.total_url)
        try:
            data = self._get_json(self.total_url)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            agg = data.get("agg")
            amount = _float(agg.get("amount") if isinstance(agg, dict) else None)
        except (requests.RequestException, ValueError, TypeError) as e:
            log.error("Error updating donation total: %s", e)
            return False
        if self.store.set(DONATION_TOTAL, amount):
            log.info("Updated donation total to %.2f", amount)
        return True

    def refresh_bids(self) -> bool:
        log.debug("Fetching bids from URL: %s", self.bids_url)
        try:
            data = self._get_json(self.bids_url)
            if not isinstance(data, list):
                raise ValueError("expected a JSON array")
            bids = normalize_bids(data)
        except (requests.RequestException, ValueError, TypeError) as e:
            log.error("Error updating bids: %s", e)
            return False
        self.store.set(BIDS, bids)
        log.debug("Updated bids (%d open)", len(bids))
        return True

    def close(self) -> None:
        self.session.close()
