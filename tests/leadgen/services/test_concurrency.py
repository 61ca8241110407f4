"""Tests for leadgen.services.concurrency — gather_settled scatter/gather."""
import threading
import time

import pytest

from leadgen.services.concurrency import FanoutTimeoutError, Settled, gather_settled


class TestGatherSettled:

    def test_empty_input(self):
        assert gather_settled([]) == []

    def test_results_keep_input_order(self):
        def slow(value, delay):
            return lambda: (time.sleep(delay), value)[1]

        outcomes = gather_settled([slow('a', 0.05), slow('b', 0.0), slow('c', 0.02)])
        assert [o.value for o in outcomes] == ['a', 'b', 'c']
        assert all(o.ok for o in outcomes)

    def test_individual_failure_is_captured(self):
        def boom():
            raise RuntimeError('source down')

        outcomes = gather_settled([lambda: 1, boom, lambda: 3])
        assert outcomes[0] == Settled(value=1)
        assert outcomes[1].ok is False
        assert isinstance(outcomes[1].error, RuntimeError)
        assert outcomes[2].value == 3

    def test_calls_run_concurrently(self):
        barrier = threading.Barrier(3, timeout=2)
        outcomes = gather_settled([barrier.wait, barrier.wait, barrier.wait], max_workers=3)
        assert all(o.ok for o in outcomes)

    def test_timeout_raises(self):
        release = threading.Event()
        try:
            with pytest.raises(FanoutTimeoutError) as exc_info:
                gather_settled([lambda: release.wait(2), lambda: 1], timeout=0.05)
            assert exc_info.value.pending == 1
        finally:
            release.set()
