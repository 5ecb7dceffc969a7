"""Query Executor — filter, order, slice and eager-load records of one entity.

Invariants:
    - get() returns clones: callers can never mutate the snapshot through a result
    - Filters run in table order; ordering uses the stable order_by
    - Eager loads are resolved per result record via Relation.load()
    - where() never raises for missing fields: an absent field reads as UNDEFINED

Design Decisions:
    - Builder methods return self so calls chain; nothing executes before get()
    - Loads sharing a head ("posts", "posts.comments") are grouped, so the
      relation is resolved once per record with every nested request applied
"""

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from normstore.core.collection_utils import (
    UNDEFINED, Selector, clone_deep, get_field, group_by, order_by,
)
from normstore.core.domain_types import PlainCollection, Record, SortDirection
from normstore.core.errors import InvalidSortDirectionError, UnknownRelationError
from normstore.core.relation import Constraint, EagerLoad, Relation

if TYPE_CHECKING:
    from normstore.core.model import Model
    from normstore.core.store import StoreSnapshot


Predicate = Callable[[Record], bool]


class Query:
    """Query over one entity table of a StoreSnapshot."""

    def __init__(self, snapshot: "StoreSnapshot", entity: "type[Model] | str"):
        self.snapshot = snapshot
        self.model = snapshot.database.model(entity)
        self.entity = self.model.entity
        self._wheres: list[Predicate] = []
        self._orders: list[tuple[Selector, SortDirection]] = []
        self._limit: int | None = None
        self._offset: int = 0
        self._loads: list[EagerLoad] = []

    # === Builders =============================================================

    def where(self, field: str | Predicate, value: Any = UNDEFINED) -> "Query":
        """Equality filter, field predicate (callable value) or record predicate."""
        if callable(field):
            self._wheres.append(field)
        elif callable(value):
            self._wheres.append(lambda record: bool(value(get_field(record, field))))
        else:
            self._wheres.append(lambda record: get_field(record, field) == value)
        return self

    def where_in(self, field: str, values: Iterable[Any]) -> "Query":
        """Membership filter backed by a set when the values are hashable."""
        self._wheres.append(_membership(field, list(values)))
        return self

    def order_by(self, field: Selector, direction: str = "asc") -> "Query":
        try:
            self._orders.append((field, SortDirection(direction.lower())))
        except (AttributeError, ValueError):
            raise InvalidSortDirectionError(direction) from None
        return self

    def limit(self, count: int) -> "Query":
        self._limit = count
        return self

    def offset(self, count: int) -> "Query":
        self._offset = count
        return self

    def with_(self, name: str, constraint: Constraint | None = None) -> "Query":
        """Eager-load a relation. Dotted names load nested relations."""
        self._loads.append(EagerLoad(name, constraint))
        return self

    def with_all(self) -> "Query":
        for name in self.model.relations():
            self.with_(name)
        return self

    # === Execution ============================================================

    def get(self) -> PlainCollection:
        rows = [
            record for record in self.snapshot.table(self.entity).values()
            if all(predicate(record) for predicate in self._wheres)
        ]
        if self._orders:
            rows = order_by(
                rows,
                [field for field, _ in self._orders],
                [direction.value for _, direction in self._orders],
            )
        end = None if self._limit is None else self._offset + self._limit
        records = [clone_deep(record) for record in rows[self._offset:end]]

        for head, loads in group_by(self._loads, lambda load: load.head).items():
            self._load_relation(records, head, loads)

        return records

    def first(self) -> Record | None:
        records = self.get()
        return records[0] if records else None

    def count(self) -> int:
        return len(self.get())

    def exists(self) -> bool:
        return self.count() > 0

    def make(self, records: PlainCollection | None = None) -> list["Model"]:
        """Hydrate records (default: this query's results) into model instances."""
        if records is None:
            records = self.get()
        return [self.model(record) for record in records]

    # === Internal =============================================================

    def _load_relation(
        self, records: PlainCollection, name: str, loads: list[EagerLoad],
    ) -> None:
        relation = self.model.schema().get(name)
        if not isinstance(relation, Relation):
            raise UnknownRelationError(self.entity, name)
        for record in records:
            record[name] = relation.load(self.snapshot, record, loads)


def _membership(field: str, values: list[Any]) -> Predicate:
    try:
        lookup: Any = set(values)
    except TypeError:
        lookup = values

    def predicate(record: Record) -> bool:
        candidate = get_field(record, field)
        try:
            return candidate in lookup
        except TypeError:
            return any(candidate == value for value in values)

    return predicate
