"""Keyed lock registry: ordering, re-entrancy and cleanup."""

import threading
import time

from ordering.locks import KeyedLocks, cart_key, order_key, stock_key


class TestKeyedLocks:
    def test_registry_is_empty_after_release(self):
        locks = KeyedLocks()
        with locks.hold(order_key("o-1"), stock_key("s-1")):
            assert len(locks) == 2
        assert len(locks) == 0

    def test_same_thread_can_reenter(self):
        locks = KeyedLocks()
        with locks.hold(order_key("o-1")):
            with locks.hold(order_key("o-1"), stock_key("s-1")):
                assert len(locks) == 2
        assert len(locks) == 0

    def test_duplicate_keys_are_held_once(self):
        locks = KeyedLocks()
        with locks.hold(stock_key("s-1"), stock_key("s-1")):
            assert len(locks) == 1

    def test_release_on_error(self):
        locks = KeyedLocks()
        try:
            with locks.hold(cart_key("c-1")):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert len(locks) == 0

    def test_same_key_is_exclusive(self):
        locks = KeyedLocks()
        active = []
        overlaps = []

        def worker():
            with locks.hold(stock_key("s-1")):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(1)
                time.sleep(0.01)
                active.pop()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlaps == []
        assert len(locks) == 0

    def test_opposite_request_orders_do_not_deadlock(self):
        locks = KeyedLocks()
        finished = []

        def forward():
            for _ in range(50):
                with locks.hold(stock_key("a"), stock_key("b")):
                    pass
            finished.append("forward")

        def backward():
            for _ in range(50):
                with locks.hold(stock_key("b"), order_key("o-1"), stock_key("a")):
                    pass
            finished.append("backward")

        threads = [threading.Thread(target=forward), threading.Thread(target=backward)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert sorted(finished) == ["backward", "forward"]


class TestAfterRelease:
    def test_runs_immediately_without_locks(self):
        locks = KeyedLocks()
        calls = []
        locks.after_release(lambda: calls.append(locks.depth))
        assert calls == [0]

    def test_deferred_until_outermost_hold_exits(self):
        locks = KeyedLocks()
        calls = []
        with locks.hold(order_key("o-1")):
            with locks.hold(stock_key("s-1")):
                locks.after_release(lambda: calls.append((locks.depth, len(locks))))
            assert calls == []
        assert calls == [(0, 0)]

    def test_callbacks_keep_their_order(self):
        locks = KeyedLocks()
        calls = []
        with locks.hold(order_key("o-1")):
            locks.after_release(lambda: calls.append("first"))
            locks.after_release(lambda: calls.append("second"))
        assert calls == ["first", "second"]

    def test_callback_may_take_locks(self):
        locks = KeyedLocks()
        calls = []

        def nested():
            with locks.hold(order_key("o-1")):
                locks.after_release(lambda: calls.append("after nested"))
            calls.append("nested")

        with locks.hold(order_key("o-1")):
            locks.after_release(nested)

        assert calls == ["after nested", "nested"]
        assert len(locks) == 0

    def test_runs_after_error_in_block(self):
        locks = KeyedLocks()
        calls = []
        try:
            with locks.hold(cart_key("c-1")):
                locks.after_release(lambda: calls.append("ran"))
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert calls == ["ran"]

    def test_deferred_work_is_per_thread(self):
        locks = KeyedLocks()
        calls = []

        with locks.hold(order_key("o-1")):
            worker = threading.Thread(target=lambda: locks.after_release(lambda: calls.append("worker")))
            worker.start()
            worker.join()
            assert calls == ["worker"]
