"""Keyed, re-entrant locks serializing work on one cart, order or variant.

Keys are ``(kind, id)`` tuples. ``hold`` always acquires in the same global
order (carts, then orders, then stock, each sorted by id), so two callers
asking for overlapping keys never deadlock. Locks are reference-counted
and dropped from the registry once nobody holds or waits on them.

Work that talks to the outside world (carriers, notification channels) is
handed to ``after_release``. While the calling thread holds locks it is
queued and runs once the outermost ``hold`` has released every lock.
"""

import threading
from contextlib import contextmanager

_RANK = {"cart": 0, "order": 1, "stock": 2}


class KeyedLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._entries: dict[tuple[str, str], list] = {}
        self._local = threading.local()

    def _checkout(self, key):
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._entries[key] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, key):
        with self._guard:
            entry = self._entries[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._entries[key]

    def _deferred(self) -> list:
        if not hasattr(self._local, "deferred"):
            self._local.deferred = []
        return self._local.deferred

    @property
    def depth(self) -> int:
        """How many ``hold`` blocks the calling thread is inside."""
        return getattr(self._local, "depth", 0)

    @contextmanager
    def hold(self, *keys):
        ordered = sorted(set(keys), key=lambda key: (_RANK[key[0]], key[1]))
        held = []
        self._local.depth = self.depth + 1
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                held.append((key, lock))
            yield
        finally:
            for key, lock in reversed(held):
                lock.release()
                self._checkin(key)
            self._local.depth -= 1
            if self._local.depth == 0:
                self._run_deferred()

    def after_release(self, callback) -> None:
        """Run ``callback`` now, or after the calling thread's locks are released."""
        if self.depth == 0:
            callback()
        else:
            self._deferred().append(callback)

    def _run_deferred(self):
        deferred = self._deferred()
        while deferred:
            deferred.pop(0)()

    def __len__(self):
        with self._guard:
            return len(self._entries)


def cart_key(cart_id) -> tuple[str, str]:
    return ("cart", str(cart_id))


def order_key(order_id) -> tuple[str, str]:
    return ("order", str(order_id))


def stock_key(stock_id) -> tuple[str, str]:
    return ("stock", str(stock_id))


registry = KeyedLocks()
