# tests/test_replicants.py
from __future__ import annotations

import threading

import pytest

from overlay.messages import MessageBus
from overlay.replicants import ReplicantStore
from overlay.scheduler import RepeatingTask


def test_declare_and_get_default():
    store = ReplicantStore()
    store.declare("bids", [])
    assert store.get("bids") == []
    assert store.declared("bids")
    assert not store.declared("other")


def test_redeclare_keeps_value():
    store = ReplicantStore()
    store.declare("total", 0)
    store.set("total", 5)
    store.declare("total", 0)
    assert store.get("total") == 5


def test_get_unknown_raises():
    store = ReplicantStore()
    with pytest.raises(KeyError):
        store.get("missing")
    with pytest.raises(KeyError):
        store.set("missing", 1)


def test_set_notifies_with_new_and_old():
    store = ReplicantStore()
    store.declare("total", 0)
    seen = []
    store.on_change("total", lambda new, old: seen.append((new, old)))
    assert store.set("total", 10.0) is True
    assert store.set("total", 10.0) is False
    assert seen == [(10.0, 0)]
    assert store.get("total") == 10.0


def test_values_are_copied():
    store = ReplicantStore()
    src = {"name": "A", "code": "a"}
    store.declare("layout", src)
    src["name"] = "changed"
    got = store.get("layout")
    got["code"] = "changed"
    assert store.get("layout") == {"name": "A", "code": "a"}


def test_failing_listener_does_not_block_others():
    store = ReplicantStore()
    store.declare("x", 0)
    seen = []

    def boom(new, old):
        raise RuntimeError("listener broke")

    store.on_change("x", boom)
    store.on_change("x", lambda new, old: seen.append(new))
    store.on_any_change(lambda name, new, old: seen.append(name))
    store.set("x", 1)
    assert seen == [1, "x"]


def test_snapshot():
    store = ReplicantStore()
    store.declare("a", 1)
    store.declare("b", [1, 2])
    assert store.snapshot() == {"a": 1, "b": [1, 2]}
    assert store.names() == ["a", "b"]


def test_bus_dispatch_with_callback():
    bus = MessageBus()
    got = []
    bus.listen_for("ping", lambda data, cb: (got.append(data), cb and cb()))
    acks = []
    assert bus.send("ping", "hello", lambda: acks.append(1)) == 1
    assert got == ["hello"]
    assert acks == [1]


def test_bus_no_listener():
    assert MessageBus().send("nobody", 1) == 0


def test_bus_handler_error_is_contained():
    bus = MessageBus()

    def bad(data, cb):
        raise ValueError("bad handler")

    got = []
    bus.listen_for("m", bad)
    bus.listen_for("m", lambda data, cb: got.append(data))
    assert bus.send("m", 3) == 2
    assert got == [3]


def test_repeating_task_runs_immediately_and_cancels():
    ran = threading.Event()
    calls = []

    def job():
        calls.append(1)
        ran.set()

    task = RepeatingTask(60, job, name="test-task").start()
    assert ran.wait(2.0)
    task.cancel(timeout=2.0)
    assert task.cancelled
    assert not task.running
    assert calls == [1]


def test_repeating_task_repeats_and_survives_errors():
    count = {"n": 0}
    done = threading.Event()

    def flaky():
        count["n"] += 1
        if count["n"] >= 3:
            done.set()
        raise RuntimeError("transient")

    task = RepeatingTask(0.01, flaky, name="flaky").start()
    try:
        assert done.wait(2.0)
    finally:
        task.cancel(timeout=2.0)
    assert count["n"] >= 3


def test_repeating_task_rejects_bad_interval_and_double_start():
    with pytest.raises(ValueError):
        RepeatingTask(0, lambda: None)
    task = RepeatingTask(60, lambda: None).start()
    try:
        with pytest.raises(RuntimeError):
            task.start()
    finally:
        task.cancel(timeout=2.0)
