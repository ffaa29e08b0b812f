"""Duplicate detection by composite key, first occurrence wins."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, TypeVar

from store_locator.etl.utils import composite_key
from store_locator.models import StoreRecord

T = TypeVar("T")


@dataclass
class Conflict(Generic[T]):
    """A later item whose key was already taken."""

    key: str
    position: int
    item: T
    first_position: int


@dataclass
class FirstSeenIndex(Generic[T]):
    """Insertion-ordered map of key -> first item, plus the rejected later items.

    The first item observed for a key is kept and never displaced; every
    later item with the same key is recorded as a conflict pointing back at
    it. Results therefore depend on the order items are observed in.

    Examples:
        >>> index = FirstSeenIndex()
        >>> index.observe("a", 0, "first")
        >>> index.observe("a", 1, "second")
        0
        >>> index.first("a")
        'first'

    """

    _first: dict[str, tuple[int, T]] = field(default_factory=dict)
    conflicts: list[Conflict[T]] = field(default_factory=list)

    def observe(self, key: str, position: int, item: T) -> int | None:
        """Record an item; return the first position if the key was already seen."""
        if key in self._first:
            first_position = self._first[key][0]
            self.conflicts.append(Conflict(key, position, item, first_position))
            return first_position
        self._first[key] = (position, item)
        return None

    def __contains__(self, key: object) -> bool:
        return key in self._first

    def __len__(self) -> int:
        return len(self._first)

    def first(self, key: str) -> T:
        return self._first[key][1]

    def first_position(self, key: str) -> int:
        return self._first[key][0]

    def keys(self) -> list[str]:
        return list(self._first)

    def items(self) -> list[T]:
        """First-seen items in insertion order."""
        return [item for _, item in self._first.values()]


@dataclass
class Duplicate:
    """A record flagged as a duplicate of an earlier one.

    Attributes:
        record: The later (flagged) record.
        position: Its 0-based input position.
        first_position: 0-based position of the record it duplicates.
        first_record: The record it duplicates.

    """

    record: StoreRecord
    position: int
    first_position: int
    first_record: StoreRecord


def store_key(record: StoreRecord) -> str:
    return composite_key(record.name, record.city, record.state)


def find_duplicates(
    records: Iterable[StoreRecord],
    key: Callable[[StoreRecord], str] = store_key,
) -> list[Duplicate]:
    """Flag every record whose key already appeared earlier in the sequence.

    The first occurrence is never flagged. Reordering the input changes
    which record is reported, so callers must keep source row order.

    Args:
        records: Records in source order.
        key: Identity function; defaults to name+city+state.

    Returns:
        Duplicates in input order.

    """
    index: FirstSeenIndex[StoreRecord] = FirstSeenIndex()
    for position, record in enumerate(records):
        index.observe(key(record), position, record)

    return [
        Duplicate(
            record=c.item,
            position=c.position,
            first_position=c.first_position,
            first_record=index.first(c.key),
        )
        for c in index.conflicts
    ]
