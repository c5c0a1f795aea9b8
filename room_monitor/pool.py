# ConcurrencyPool: drives N coroutines to completion with at most `limit`
# in flight.

# Admission follows input order: a slot (semaphore permit) must be free before
# the next item is started, and a slot frees as soon as any running task
# settles. Completion order is whatever the network makes it.
#
# Failure model: a task that raises is logged and counted as completed like any
# other; it never reaches the caller and never stops its siblings. The same
# holds for a progress or batch hook that raises: run() returns only once every
# item has settled.

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from room_monitor.config import JITTER_MAX_INITIAL_SECONDS

log = logging.getLogger(__name__)

T = TypeVar("T")

TaskFn = Callable[[T, float], Awaitable[Any]]
ProgressFn = Callable[[int, int], None]


class ConcurrencyPool:

    def __init__(
        self,
        jitter_max_seconds: float = JITTER_MAX_INITIAL_SECONDS,
        rng: random.Random | None = None,
    ) -> None:
        self._jitter_max = jitter_max_seconds
        self._rng = rng or random.Random()

    async def run(
        self,
        items: Sequence[T],
        limit: int,
        task_fn: TaskFn,
        batch_size: int = 1,
        apply_jitter: bool = False,
        on_progress: ProgressFn | None = None,
        on_batch: ProgressFn | None = None,
    ) -> int:
        """
        Process every item exactly once; returns the number completed.

        on_progress fires after every settle, on_batch every `batch_size`
        settles and always on the last one.
        """
        total = len(items)
        if total == 0:
            return 0

        slots = asyncio.Semaphore(max(1, limit))
        batch_size = max(1, batch_size)
        completed = 0

        async def _settle(item: T, jitter: float) -> None:
            nonlocal completed
            try:
                await task_fn(item, jitter)
            except asyncio.CancelledError:
                raise
            except Exception:
                log.exception("Task failed for %r", item)
            finally:
                completed += 1
                try:
                    if on_progress is not None:
                        on_progress(completed, total)
                    if on_batch is not None and (completed % batch_size == 0 or completed == total):
                        on_batch(completed, total)
                except Exception:
                    log.exception("Progress hook failed at %d/%d", completed, total)
                finally:
                    slots.release()

        tasks: list[asyncio.Task] = []
        for item in items:
            await slots.acquire()
            jitter = self._rng.uniform(0, self._jitter_max) if apply_jitter else 0.0
            tasks.append(asyncio.create_task(_settle(item, jitter)))

        await asyncio.gather(*tasks, return_exceptions=True)
        return completed
