import threading

# key -> [lock, number of threads holding or waiting on it]
_locks = {}
_guard = threading.Lock()


def _checkout(key):
    with _guard:
        entry = _locks.get(key)
        if entry is None:
            entry = _locks[key] = [threading.Lock(), 0]
        entry[1] += 1
        return entry[0]


def _checkin(key):
    with _guard:
        entry = _locks.get(key)
        if entry is None:
            return
        entry[1] -= 1
        if entry[1] <= 0:
            del _locks[key]


def acquire_lock(key, timeout: float) -> bool:
    """
    Blocks up to ``timeout`` seconds for the lock named ``key``.
    Returns False on timeout; the caller must not call release_lock then.
    """
    lock = _checkout(key)
    if lock.acquire(timeout=timeout):
        return True
    _checkin(key)
    return False


def release_lock(key) -> None:
    with _guard:
        entry = _locks.get(key)
    if entry is None:
        return
    entry[0].release()
    _checkin(key)
