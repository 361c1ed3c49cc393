# tests/test_tracker.py
from __future__ import annotations

from typing import Any, List

import pytest
import requests

from overlay.replicants import ReplicantStore
from overlay.tracker import BIDS, DONATION_TOTAL, TrackerPoller


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, bad_json: bool = False) -> None:
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def json(self) -> Any:
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Svarer med neste element i køen; Exception-instanser kastes."""

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[tuple] = []
        self.closed = False

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.calls.append((url, timeout))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


def make_poller(*responses: Any) -> tuple[TrackerPoller, FakeSession, ReplicantStore]:
    store = ReplicantStore()
    session = FakeSession(*responses)
    poller = TrackerPoller(
        store,
        url="https://tracker.example/tracker/",
        event_id="sgdq",
        timeout=7,
        session=session,  # type: ignore[arg-type]
    )
    return poller, session, store


def test_urls():
    poller, _, _ = make_poller()
    assert poller.total_url == "https://tracker.example/tracker/sgdq?json"
    assert poller.bids_url == "https://tracker.example/tracker/search?event=sgdq&type=allbids&state=OPENED"


def test_defaults_declared():
    _, _, store = make_poller()
    assert store.get(DONATION_TOTAL) == 0
    assert store.get(BIDS) == []


def test_refresh_total_success():
    poller, session, store = make_poller(FakeResponse(payload={"agg": {"amount": "1234.5", "count": 10}}))
    assert poller.refresh_total() is True
    assert store.get(DONATION_TOTAL) == 1234.5
    assert session.calls == [("https://tracker.example/tracker/sgdq?json", 7)]


def test_refresh_total_missing_agg_is_zero():
    poller, _, store = make_poller(FakeResponse(payload={"agg": {"amount": 10}}), FakeResponse(payload={}))
    poller.refresh_total()
    assert poller.refresh_total() is True
    assert store.get(DONATION_TOTAL) == 0.0


def test_refresh_total_notifies_only_on_change():
    poller, _, store = make_poller(
        FakeResponse(payload={"agg": {"amount": 50}}),
        FakeResponse(payload={"agg": {"amount": 50}}),
        FakeResponse(payload={"agg": {"amount": 75}}),
    )
    seen = []
    store.on_change(DONATION_TOTAL, lambda new, old: seen.append((new, old)))
    poller.refresh_total()
    poller.refresh_total()
    poller.refresh_total()
    assert seen == [(50.0, 0), (75.0, 50.0)]


@pytest.mark.parametrize(
    "failure",
    [
        requests.ConnectionError("connection refused"),
        requests.Timeout("read timed out"),
        FakeResponse(status_code=503, payload={"agg": {"amount": 1}}),
        FakeResponse(bad_json=True),
        FakeResponse(payload=["not", "an", "object"]),
    ],
)
def test_refresh_total_failure_keeps_previous(failure):
    poller, _, store = make_poller(FakeResponse(payload={"agg": {"amount": 99.0}}), failure)
    assert poller.refresh_total() is True
    assert poller.refresh_total() is False
    assert store.get(DONATION_TOTAL) == 99.0


def test_refresh_bids_success():
    payload = [
        {"pk": 1, "fields": {"state": "OPENED", "parent": None, "name": "Name the dog", "total": "30",
                             "istarget": False, "allowuseroptions": True,
                             "speedrun__endtime": "2019-01-06T18:00:00Z"}},
        {"pk": 2, "fields": {"state": "OPENED", "parent": 1, "name": "Rex", "total": "10"}},
        {"pk": 3, "fields": {"state": "OPENED", "parent": 1, "name": "Fido", "total": "20"}},
    ]
    poller, session, store = make_poller(FakeResponse(payload=payload))
    assert poller.refresh_bids() is True
    (bid,) = store.get(BIDS)
    assert [o["name"] for o in bid["options"]] == ["Fido", "Rex"]
    assert session.calls[0][0].endswith("/search?event=sgdq&type=allbids&state=OPENED")


@pytest.mark.parametrize(
    "failure",
    [
        requests.ConnectionError("boom"),
        FakeResponse(status_code=404, payload=[]),
        FakeResponse(bad_json=True),
        FakeResponse(payload={"error": "nope"}),
    ],
)
def test_refresh_bids_failure_keeps_previous(failure):
    ok = [{"pk": 1, "fields": {"state": "OPENED", "name": "Target", "total": "1", "istarget": True, "goal": "5"}}]
    poller, _, store = make_poller(FakeResponse(payload=ok), failure)
    poller.refresh_bids()
    before = store.get(BIDS)
    assert poller.refresh_bids() is False
    assert store.get(BIDS) == before
    assert before[0]["id"] == 1


def test_close_closes_session():
    poller, session, _ = make_poller()
    poller.close()
    assert session.closed is True


@pytest.mark.parametrize("amount", ["NaN", "nan", "inf", "-Infinity"])
def test_refresh_total_non_finite_is_zero(amount):
    poller, _, store = make_poller(
        FakeResponse(payload={"agg": {"amount": amount}}),
        FakeResponse(payload={"agg": {"amount": amount}}),
    )
    seen = []
    store.on_change(DONATION_TOTAL, lambda new, old: seen.append(new))
    assert poller.refresh_total() is True
    assert poller.refresh_total() is True
    assert store.get(DONATION_TOTAL) == 0.0
    assert seen == []


def test_refresh_bids_unhashable_ids_do_not_raise():
    payload = [
        {"pk": [1], "fields": {"state": "OPENED", "parent": None, "istarget": True}},
        {"pk": 2, "fields": {"state": "OPENED", "parent": {"pk": 1}, "name": "x", "total": "1"}},
        {"pk": 3, "fields": {"state": "OPENED", "parent": None, "name": "ok", "istarget": True, "goal": "5"}},
    ]
    poller, _, store = make_poller(FakeResponse(payload=payload))
    assert poller.refresh_bids() is True
    assert [b["id"] for b in store.get(BIDS)] == [3]


def test_refresh_bids_type_error_keeps_previous(monkeypatch):
    ok = [{"pk": 1, "fields": {"state": "OPENED", "name": "Target", "total": "1", "istarget": True}}]
    poller, _, store = make_poller(FakeResponse(payload=ok), FakeResponse(payload=ok))
    poller.refresh_bids()

    def broken(records):
        raise TypeError("unhashable type: 'list'")

    monkeypatch.setattr("overlay.tracker.normalize_bids", broken)
    assert poller.refresh_bids() is False
    assert store.get(BIDS)[0]["id"] == 1
