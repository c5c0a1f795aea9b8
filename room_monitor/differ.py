import math
from typing import Any, Iterable

from room_monitor.config import COMPARE_FIELDS
from room_monitor.models import CacheEntry, DiffResult


class DataDiffer:
    """
    Field-by-field comparison of two cache entries.

    Only presentation fields take part (COMPARE_FIELDS); bookkeeping such as
    stale/loading flags or the previous diff result never counts as a change.
    A missing previous entry reports every compared field, so a room seen for
    the first time always renders.

    Pure: neither argument is touched, the same inputs give the same output.
    """

    _MAX_VALUE_LEN = 30

    def __init__(self, compare_fields: Iterable[str] = COMPARE_FIELDS) -> None:
        self._fields = tuple(compare_fields)

    def compare(self, prev: CacheEntry | None, new: CacheEntry) -> DiffResult:
        if prev is None:
            return DiffResult(changed=True, changes=self._fields)

        changes = tuple(
            name for name in self._fields
            if not self.is_equal(getattr(prev, name, None), getattr(new, name, None))
        )
        return DiffResult(changed=bool(changes), changes=changes)

    @staticmethod
    def is_equal(a: Any, b: Any) -> bool:
        if a is None or b is None:
            return a is b
        if type(a) is not type(b):
            # bool is an int subclass; True must not equal 1 here
            if isinstance(a, bool) or isinstance(b, bool):
                return False
            if not (isinstance(a, (int, float)) and isinstance(b, (int, float))):
                return False
        if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
            return True
        if isinstance(a, str):
            return a.strip() == b.strip()
        return a == b

    def summarize(
        self,
        prev: CacheEntry | None,
        new: CacheEntry,
        changes: Iterable[str],
    ) -> str:
        """'title: old → new, heat_value: 10 → 20' for diagnostic logging."""
        return ", ".join(
            f"{name}: {self._format_value(getattr(prev, name, None))}"
            f" → {self._format_value(getattr(new, name, None))}"
            for name in changes
        )

    def _format_value(self, value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value)
        if len(text) > self._MAX_VALUE_LEN:
            return text[: self._MAX_VALUE_LEN] + "..."
        return text
