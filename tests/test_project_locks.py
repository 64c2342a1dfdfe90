import gc
import threading

from app.modules.builds import project_locks


def test_same_project_shares_one_lock():
    assert project_locks.get_lock("proj-a") is project_locks.get_lock("proj-a")
    assert project_locks.get_lock("proj-a") is not project_locks.get_lock("proj-b")


def test_lock_is_kept_only_while_referenced():
    lock = project_locks.get_lock("proj-transient")
    with project_locks.hold("proj-transient"):
        assert project_locks.get_lock("proj-transient") is lock

    del lock
    gc.collect()

    assert "proj-transient" not in project_locks._registry


def test_hold_is_reentrant_within_a_thread():
    with project_locks.hold("proj-reentrant"):
        with project_locks.hold("proj-reentrant"):
            pass

    lock = project_locks.get_lock("proj-reentrant")
    assert lock.acquire(blocking=False)
    lock.release()


def test_hold_serializes_threads_for_one_project():
    entered = threading.Event()
    release = threading.Event()
    order = []

    def first():
        with project_locks.hold("proj-serial"):
            order.append("first-start")
            entered.set()
            release.wait(timeout=5)
            order.append("first-end")

    def second():
        entered.wait(timeout=5)
        with project_locks.hold("proj-serial"):
            order.append("second")

    t1 = threading.Thread(target=first)
    t2 = threading.Thread(target=second)
    t1.start()
    t2.start()
    entered.wait(timeout=5)
    t2.join(timeout=0.2)
    assert order == ["first-start"]

    release.set()
    t1.join(timeout=5)
    t2.join(timeout=5)
    assert order == ["first-start", "first-end", "second"]


def test_hold_releases_on_error():
    try:
        with project_locks.hold("proj-error"):
            raise RuntimeError("build exploded")
    except RuntimeError:
        pass

    lock = project_locks.get_lock("proj-error")
    assert lock.acquire(blocking=False)
    lock.release()


def test_other_projects_are_not_blocked():
    result = []

    def try_other():
        lock = project_locks.get_lock("proj-y")
        result.append(lock.acquire(blocking=False))
        lock.release()

    with project_locks.hold("proj-x"):
        t = threading.Thread(target=try_other)
        t.start()
        t.join(timeout=5)

    assert result == [True]
