import threading

from matching.services.locks import LOCK_STRIPES, _locks, load_lock, lock_for


def test_lock_pool_does_not_grow():
    for load_id in range(1000):
        with load_lock(load_id):
            pass
    assert len(_locks) == LOCK_STRIPES


def test_same_load_shares_a_lock():
    assert lock_for(42) is lock_for(42)
    assert lock_for(42) is lock_for("42")


def test_load_lock_is_reentrant():
    with load_lock(7):
        with load_lock(7):
            pass


def test_load_lock_excludes_other_threads():
    acquired = threading.Event()

    def grab():
        with load_lock(11):
            acquired.set()

    with load_lock(11):
        worker = threading.Thread(target=grab)
        worker.start()
        assert not acquired.wait(0.1)
    worker.join(timeout=2)
    assert acquired.is_set()
