"""Shared utilities for the throughput analyzer."""

from datetime import datetime, timezone
from typing import Any, Generic, Hashable, Iterable, Iterator, TypeVar

T = TypeVar('T', bound=Hashable)


def parse_timestamp(value: Any) -> datetime:
    """Parse a record timestamp into a timezone-aware datetime.

    Args:
        value: ISO-8601 string (with 'Z' or an offset) or epoch milliseconds

    Returns:
        Aware datetime; naive ISO values are read as UTC

    Raises:
        ValueError: If the value is missing or not a recognized format
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e

    if isinstance(value, str):
        dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    raise ValueError(f"Invalid timestamp: {value!r}")


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(round(dt.timestamp() * 1000))


def safe_get_nested(data: dict, *keys: str, default: Any = None) -> Any:
    """Safely get a nested value from a dictionary.

    Args:
        data: The dictionary to search
        *keys: The nested keys to follow
        default: Default value if key path not found

    Returns:
        The nested value or default

    Example:
        safe_get_nested({'a': {'b': 1}}, 'a', 'b') -> 1
        safe_get_nested({'a': {}}, 'a', 'b', default=0) -> 0
    """
    result = data
    for key in keys:
        if isinstance(result, dict):
            result = result.get(key, default)
        else:
            return default
    return result


def safe_mean(values: list[float]) -> float:
    """Arithmetic mean, 0 for an empty list."""
    return sum(values) / len(values) if values else 0


class OrderedSet(Generic[T]):
    """Insertion-ordered set: a list for order plus a set for membership."""

    def __init__(self, items: Iterable[T] = ()):
        self._items: list[T] = []
        self._seen: set[T] = set()
        for item in items:
            self.add(item)

    def add(self, item: T) -> None:
        if item not in self._seen:
            self._seen.add(item)
            self._items.append(item)

    def first(self, default: T | None = None) -> T | None:
        return self._items[0] if self._items else default

    def to_list(self) -> list[T]:
        return list(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._seen

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)
