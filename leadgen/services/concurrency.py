"""
Scatter/gather over a thread pool.

gather_settled() runs independent I/O calls concurrently and waits for all of
them. An individual failure is captured in its Settled slot instead of being
raised, so call sites get partial-failure tolerance for free.
"""
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence


class FanoutTimeoutError(TimeoutError):
    """The join did not complete within the allowed wait."""
    def __init__(self, pending: int, timeout: float):
        self.pending = pending
        self.timeout = timeout
        super().__init__(f"{pending} task(s) still running after {timeout:.1f}s")


@dataclass
class Settled:
    """Outcome of one scattered call: a value or the exception it raised."""
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def gather_settled(
    calls: Sequence[Callable[[], Any]],
    max_workers: int = 8,
    timeout: Optional[float] = None,
) -> List[Settled]:
    """
    Run every call concurrently and return their outcomes in input order.

    Args:
        calls:       Zero-argument callables.
        max_workers: Upper bound on pool threads.
        timeout:     Seconds to wait for the whole batch. None waits forever.

    Raises:
        FanoutTimeoutError: if calls are still running when `timeout` elapses.
                            Queued calls are cancelled; running ones are
                            abandoned.
    """
    if not calls:
        return []

    executor = ThreadPoolExecutor(
        max_workers=max(1, min(max_workers, len(calls))),
        thread_name_prefix='fanout',
    )
    timed_out = False
    try:
        futures = [executor.submit(call) for call in calls]
        _, pending = wait(futures, timeout=timeout)
        if pending:
            timed_out = True
            for future in pending:
                future.cancel()
            raise FanoutTimeoutError(len(pending), timeout or 0.0)

        outcomes = []
        for future in futures:
            error = future.exception()
            outcomes.append(Settled(error=error) if error else Settled(value=future.result()))
        return outcomes
    finally:
        executor.shutdown(wait=not timed_out, cancel_futures=True)
