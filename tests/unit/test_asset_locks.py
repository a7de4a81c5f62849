import threading
import time

from src.application.asset_locks import AssetLockRegistry, get_asset_locks


def test_hold_is_reentrant():
    locks = AssetLockRegistry()
    with locks.hold("a"):
        with locks.hold("a"):
            assert len(locks) == 1
    assert len(locks) == 0


def test_entries_released_after_hold():
    locks = AssetLockRegistry()
    for i in range(1000):
        with locks.hold(f"nobody-{i}"):
            pass
    assert len(locks) == 0


def test_entry_released_when_body_raises():
    locks = AssetLockRegistry()
    try:
        with locks.hold("a"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert len(locks) == 0


def test_hold_serializes_same_asset():
    locks = AssetLockRegistry()
    inside = []
    overlaps = []

    def worker():
        with locks.hold("a"):
            if inside:
                overlaps.append(True)
            inside.append(True)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlaps == []
    assert len(locks) == 0


def test_different_assets_do_not_contend():
    locks = AssetLockRegistry()
    entered = threading.Event()

    def other():
        with locks.hold("b"):
            entered.set()

    with locks.hold("a"):
        t = threading.Thread(target=other)
        t.start()
        assert entered.wait(timeout=2)
        t.join()


def test_process_wide_registry():
    assert get_asset_locks() is get_asset_locks()
