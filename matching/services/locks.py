"""Per-load exclusive locks.

``select_for_update`` serialises writers on databases that support row
locks; these give the same guarantee inside one process on those that
don't (SQLite in tests and local runs).

Loads share a fixed pool of striped locks, so two loads may occasionally
wait on each other but the pool never grows. Never hold two load locks at
once.
"""

from contextlib import contextmanager
from threading import RLock

LOCK_STRIPES = 64

_locks = tuple(RLock() for _ in range(LOCK_STRIPES))


def lock_for(load_id) -> RLock:
    return _locks[hash(str(load_id)) % LOCK_STRIPES]


@contextmanager
def load_lock(load_id):
    with lock_for(load_id):
        yield
