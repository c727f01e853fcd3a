"""Bounded fan-out for per-file scans with ordered fan-in and request deadlines."""

from __future__ import annotations

import time
from collections.abc import Callable, Generator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")

_BATCH_FACTOR = 4


class DeadlineExceededError(Exception):
    """Raised when a request runs past its deadline; no partial result is returned."""

    def __init__(self, operation: str, timeout_ms: int) -> None:
        super().__init__(f"{operation} exceeded the {timeout_ms} ms request deadline.")
        self.operation = operation
        self.timeout_ms = timeout_ms


@dataclass(slots=True, frozen=True)
class Deadline:
    """Monotonic-clock request deadline; ``expires_at`` None means unbounded."""

    expires_at: float | None
    timeout_ms: int = 0

    @classmethod
    def after_ms(cls, timeout_ms: int) -> Deadline:
        if timeout_ms <= 0:
            return cls.unbounded()
        return cls(expires_at=time.monotonic() + timeout_ms / 1000.0, timeout_ms=timeout_ms)

    @classmethod
    def unbounded(cls) -> Deadline:
        return cls(expires_at=None)

    def remaining(self) -> float | None:
        """Seconds left, or None when unbounded."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    def check(self, operation: str) -> None:
        """Raise DeadlineExceededError once the deadline has passed."""
        if self.expired():
            raise DeadlineExceededError(operation=operation, timeout_ms=self.timeout_ms)


class ScanExecutor:
    """Runs independent per-item work on a bounded thread pool.

    Results are yielded in input order regardless of completion order. Work is
    submitted in batches, so a consumer that stops early leaves at most one batch
    of wasted work behind.
    """

    def __init__(self, workers: int) -> None:
        self._workers = max(1, workers)
        self._pool: ThreadPoolExecutor | None = None
        if self._workers > 1:
            self._pool = ThreadPoolExecutor(
                max_workers=self._workers, thread_name_prefix="codescope-scan"
            )

    @property
    def workers(self) -> int:
        return self._workers

    def map_ordered(
        self,
        work: Callable[[T], R],
        items: Sequence[T],
        *,
        deadline: Deadline | None = None,
        operation: str = "scan",
    ) -> Generator[R, None, None]:
        """Yield ``work(item)`` for each item in input order."""
        active_deadline = deadline or Deadline.unbounded()
        if self._pool is None:
            for item in items:
                active_deadline.check(operation)
                yield work(item)
            return

        batch_size = self._workers * _BATCH_FACTOR
        for start in range(0, len(items), batch_size):
            active_deadline.check(operation)
            futures: list[Future[R]] = [
                self._pool.submit(work, item) for item in items[start : start + batch_size]
            ]
            try:
                for future in futures:
                    try:
                        result = future.result(timeout=active_deadline.remaining())
                    except TimeoutError as error:
                        raise DeadlineExceededError(
                            operation=operation, timeout_ms=active_deadline.timeout_ms
                        ) from error
                    yield result
            finally:
                for future in futures:
                    future.cancel()

    def shutdown(self) -> None:
        """Stop the worker pool; queued work is cancelled."""
        if self._pool is not None:
            self._pool.shutdown(wait=False, cancel_futures=True)
