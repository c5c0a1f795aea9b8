import time
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class ProgressSnapshot:
    completed: int
    total: int
    elapsed_ms: float
    running: bool


class StatsTracker:
    """
    Progress of the current refresh cycle.

    The observer is advisory: it is called on start, on every completion and
    on finish, and may be omitted entirely.
    """

    def __init__(
        self,
        observer: Callable[[ProgressSnapshot], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._observer = observer
        self._clock = clock
        self.total = 0
        self.completed = 0
        self.started_at: float | None = None
        self.running = False

    @property
    def elapsed_ms(self) -> float:
        if self.started_at is None:
            return 0.0
        return (self._clock() - self.started_at) * 1000

    def start(self, total: int) -> None:
        self.total = total
        self.completed = 0
        self.started_at = self._clock()
        self.running = True
        self._notify()

    def record(self, completed: int, total: int | None = None) -> None:
        self.completed = completed
        if total is not None:
            self.total = total
        self._notify()

    def finish(self) -> None:
        self.running = False
        self._notify()

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            completed=self.completed,
            total=self.total,
            elapsed_ms=self.elapsed_ms,
            running=self.running,
        )

    def _notify(self) -> None:
        if self._observer is not None:
            self._observer(self.snapshot())
