"""Collection Utilities — pure helpers for measuring, reshaping, ordering and cloning.

Invariants:
    - All functions are pure: inputs are never mutated
    - order_by is stable: fully tied elements keep their input order
    - compare_ascending is a total order over heterogeneous values
      (NaN last, UNDEFINED after present values, None before present values)
    - clone_deep shares no mutable structure with its input at any depth

Design Decisions:
    - UNDEFINED sentinel distinguishes "field absent" from "field is None"
    - Mixed-type comparison falls back to str() on both sides instead of raising
    - Index carried in SortableEntry as the final tie-break, so stability does not
      depend on the sort algorithm
"""

import copy
import functools
import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any


class _Undefined:
    """Marker for a missing field. Falsy, singleton."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNDEFINED: Any = _Undefined()

Selector = str | Callable[[Any], Any]
ObjectIteratee = Callable[[Any, str, Mapping], Any]


@dataclass
class SortableEntry:
    """One element of an order_by call: its criteria, original index and value."""
    criteria: list[Any]
    index: int
    value: Any


# === Public API ===============================================================

def size(collection: Sequence | Mapping) -> int:
    """Length of a sequence, or number of own keys of a mapping."""
    if isinstance(collection, Mapping):
        return len(collection.keys())
    return len(collection)


def is_empty(collection: Sequence | Mapping) -> bool:
    return size(collection) == 0


def for_own(obj: Mapping, iteratee: ObjectIteratee) -> None:
    """Invoke iteratee(value, key, obj) for each key, in key order."""
    for key in list(obj.keys()):
        iteratee(obj[key], key, obj)


def map_entries(obj: Mapping, iteratee: ObjectIteratee) -> list:
    """List of iteratee(value, key, obj) for each key, in key order."""
    return [iteratee(obj[key], key, obj) for key in list(obj.keys())]


def map_values(obj: Mapping, iteratee: ObjectIteratee) -> dict:
    """Dict with the same keys as obj, values replaced by iteratee(value, key, obj)."""
    return {key: iteratee(obj[key], key, obj) for key in list(obj.keys())}


def key_by(collection: Iterable, key: str) -> dict:
    """Index collection by item[key]. Later items overwrite earlier ones.

    Unhashable key values are indexed by their str() form.
    """
    result: dict = {}
    for item in collection:
        result[_hashable(get_field(item, key, None))] = item
    return result


def group_by(collection: Iterable, iteratee: Callable[[Any], Any]) -> dict:
    """Bucket items by iteratee(item).

    Buckets appear in first-seen order; items keep input order within a bucket.
    Unhashable bucket keys are replaced by their str() form.
    """
    result: dict = {}
    for item in collection:
        result.setdefault(_hashable(iteratee(item)), []).append(item)
    return result


def order_by(
    collection: Iterable,
    iteratees: Sequence[Selector],
    directions: Sequence[str] = (),
) -> list:
    """Stable multi-key sort.

    Each selector is a field name or a one-argument callable. A direction of
    "desc" at position i reverses criterion i; missing directions are ascending.
    """
    entries = [
        SortableEntry(
            criteria=[_select(value, iteratee) for iteratee in iteratees],
            index=index,
            value=value,
        )
        for index, value in enumerate(collection)
    ]
    entries.sort(key=functools.cmp_to_key(
        lambda a, b: compare_multiple(a, b, directions),
    ))
    return [entry.value for entry in entries]


def compare_multiple(
    entry: SortableEntry, other: SortableEntry, directions: Sequence[str],
) -> int:
    """Compare criteria position by position; original index breaks full ties."""
    for position, (value, other_value) in enumerate(zip(entry.criteria, other.criteria)):
        result = compare_ascending(value, other_value)
        if result:
            if position >= len(directions):
                return result
            return -result if directions[position] == "desc" else result
    return entry.index - other.index


def compare_ascending(value: Any, other: Any) -> int:
    """Total ascending order over arbitrary scalars.

    Ranking rules, first match wins:
        1. equal values (including NaN vs NaN) compare as 0
        2. NaN sorts after everything
        3. UNDEFINED sorts after every present value
        4. None sorts before every other present value
        5. two numbers compare numerically; any other pair compares by str()
    """
    val_is_nan = _is_nan(value)
    oth_is_nan = _is_nan(other)
    if val_is_nan or oth_is_nan:
        return int(val_is_nan) - int(oth_is_nan)

    if value is other:
        return 0

    val_is_undefined = value is UNDEFINED
    oth_is_undefined = other is UNDEFINED
    if val_is_undefined or oth_is_undefined:
        return int(val_is_undefined) - int(oth_is_undefined)

    if value is None or other is None:
        return int(other is None) - int(value is None)

    if not (_is_number(value) and _is_number(other)):
        value, other = str(value), str(other)

    if value > other:
        return 1
    if value < other:
        return -1
    return 0


def clone_deep(data: Any) -> Any:
    """Structural copy over mappings, lists and tuples.

    Scalars are returned as-is; any other object is copied with copy.deepcopy.
    """
    if data is None or isinstance(data, (str, bytes, int, float, complex, _Undefined)):
        return data
    if isinstance(data, Mapping):
        return {key: clone_deep(value) for key, value in data.items()}
    if isinstance(data, list):
        return [clone_deep(item) for item in data]
    if isinstance(data, tuple):
        return tuple(clone_deep(item) for item in data)
    return copy.deepcopy(data)


def get_field(item: Any, key: str, default: Any = UNDEFINED) -> Any:
    """Read key from a mapping or attribute from an object."""
    if isinstance(item, Mapping):
        return item.get(key, default)
    return getattr(item, key, default)


# === Internal helpers =========================================================

def _select(value: Any, iteratee: Selector) -> Any:
    if callable(iteratee):
        return iteratee(value)
    return get_field(value, iteratee)


def _hashable(key: Any) -> Any:
    try:
        hash(key)
    except TypeError:
        return str(key)
    return key


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)
