import threading
import time

from app.core.locks import KeyedLock
from app.services.gate_event_service import resident_day_locks

KEY = ("hostel-a", "R1", "2025-01-06")


def test_same_key_is_mutually_exclusive():
    locks = KeyedLock()
    inside = []
    overlaps = []
    first_entered = threading.Event()

    def worker(name):
        with locks.hold(KEY):
            inside.append(name)
            if len(inside) > 1:
                overlaps.append(tuple(inside))
            first_entered.set()
            time.sleep(0.05)
            inside.remove(name)

    first = threading.Thread(target=worker, args=("first",))
    first.start()
    first_entered.wait(timeout=2)
    second = threading.Thread(target=worker, args=("second",))
    second.start()
    first.join(timeout=2)
    second.join(timeout=2)

    assert overlaps == []
    assert len(locks) == 0


def test_waiting_caller_blocks_until_release():
    locks = KeyedLock()
    acquired = threading.Event()

    def worker():
        with locks.hold(KEY):
            acquired.set()

    with locks.hold(KEY):
        thread = threading.Thread(target=worker)
        thread.start()
        assert not acquired.wait(timeout=0.1)
        assert len(locks) == 1

    thread.join(timeout=2)
    assert acquired.is_set()
    assert len(locks) == 0


def test_distinct_keys_do_not_block_each_other():
    locks = KeyedLock()
    acquired = threading.Event()

    def worker():
        with locks.hold(("hostel-a", "R2", "2025-01-06")):
            acquired.set()

    with locks.hold(KEY):
        thread = threading.Thread(target=worker)
        thread.start()
        assert acquired.wait(timeout=2)
        thread.join(timeout=2)

    assert len(locks) == 0


def test_registry_released_after_error():
    locks = KeyedLock()
    try:
        with locks.hold(KEY):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert len(locks) == 0
    with locks.hold(KEY):
        assert len(locks) == 1


def test_recording_runs_under_the_resident_day_lock(record, monkeypatch):
    held = []
    original = resident_day_locks.hold

    def tracking_hold(key):
        held.append(key)
        return original(key)

    monkeypatch.setattr(resident_day_locks, "hold", tracking_hold)
    record("R1", "ENTRY", "09:00")

    assert held == [("hostel-a", "R1", "2025-01-06")]
    assert len(resident_day_locks) == 0
