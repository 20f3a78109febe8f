# ═══════════════════════════════════════════════════════════════════════════════
# PART 4: BOUNDED HISTORIES
# Implementation: I3 (State Management)
# ═══════════════════════════════════════════════════════════════════════════════

"""
I3: "Nothing here is persisted. Everything the loop remembers is a ring:
fixed capacity, oldest out first."
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional


@dataclass
class InputRecord:
    input: Any
    state: Any
    timestamp: float


@dataclass(frozen=True)
class EvolutionEntry:
    """One per cycle: where the framework stood after refinement."""
    time: int
    plasticity: float
    quality: float
    complexity: float


class BoundedHistory:
    """Append-only ring that evicts its oldest item once full."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._items: deque = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    @property
    def latest(self) -> Optional[Any]:
        return self._items[-1] if self._items else None

    def append(self, item: Any) -> None:
        self._items.append(item)

    def recent(self, n: int) -> List[Any]:
        """Last n items, oldest first."""
        if n <= 0:
            return []
        return list(self._items)[-n:]

    def to_list(self) -> List[Any]:
        return list(self._items)


class EvolutionLog(BoundedHistory):
    """Ring of EvolutionEntry with a cycle index that keeps counting past capacity."""

    def __init__(self, capacity: int = 50) -> None:
        super().__init__(capacity)
        self._next_time = 0

    def record(self, plasticity: float, quality: float, complexity: float) -> EvolutionEntry:
        entry = EvolutionEntry(
            time=self._next_time,
            plasticity=plasticity,
            quality=quality,
            complexity=complexity,
        )
        self._next_time += 1
        self.append(entry)
        return entry
