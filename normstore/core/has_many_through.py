"""Has Many Through — two-hop join parent → through (pivot) → related.

Invariants:
    - Result = related records r such that some through record t has
      t[first_key] == parent[local_key] and r[second_key] == t[second_local_key]
    - No pivot data in the result; related-table order, then caller shaping
    - No matching through record → empty list, never an error
    - Join keys are frozen at construction (ThroughKeys is an immutable model)

Design Decisions:
    - Candidate ids held in a set: O(T + R) instead of O(T · R)
    - attach() is a no-op: the join key lives on the pivot, so there is nothing
      to stamp on the parent or related record during normalization
    - make() only builds instances from structured payloads (mappings or model
      instances); a bare identifier in first position yields []
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from normstore.core.collection_utils import get_field
from normstore.core.domain_types import NormalizedData, PlainCollection, Record, RelationKind
from normstore.core.errors import ErrorContext, InvalidRelationError
from normstore.core.model import Model
from normstore.core.query import Query
from normstore.core.relation import EagerLoad, Relation

if TYPE_CHECKING:
    from normstore.core.store import StoreSnapshot


class ThroughKeys(BaseModel):
    """The four key names of a many-through join path."""

    model_config = ConfigDict(frozen=True)

    first_key: str = Field(min_length=1)          # on through, matches parent[local_key]
    second_key: str = Field(min_length=1)         # on related, matches through[second_local_key]
    local_key: str = Field(min_length=1)          # on parent
    second_local_key: str = Field(min_length=1)   # on through


class HasManyThrough(Relation):
    """Parent has many related records reachable through a pivot entity."""

    kind = RelationKind.HAS_MANY_THROUGH

    def __init__(
        self,
        model: type[Model],
        related: type[Model] | str,
        through: type[Model] | str,
        first_key: str,
        second_key: str,
        local_key: str,
        second_local_key: str,
    ):
        super().__init__(model)
        self.related = model.relation(related)
        self.through = model.relation(through)
        try:
            self.keys = ThroughKeys(
                first_key=first_key,
                second_key=second_key,
                local_key=local_key,
                second_local_key=second_local_key,
            )
        except ValidationError as e:
            raise InvalidRelationError(
                f"Invalid has-many-through keys on '{model.entity}': {e.errors()}",
                relation=f"{model.entity}->{self.related.entity}",
                context=ErrorContext(entity=model.entity),
            ) from e
        self.records: Any = []

    @property
    def first_key(self) -> str:
        return self.keys.first_key

    @property
    def second_key(self) -> str:
        return self.keys.second_key

    @property
    def local_key(self) -> str:
        return self.keys.local_key

    @property
    def second_local_key(self) -> str:
        return self.keys.second_local_key

    def set(self, value: Any) -> None:
        self.records = value

    def fill(self, value: Any) -> Any:
        return value or []

    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        return None

    def load(
        self, snapshot: "StoreSnapshot", record: Record, loads: Sequence[EagerLoad] = (),
    ) -> PlainCollection:
        """Resolve related records for record through the pivot table."""
        through_query = Query(snapshot, self.through.entity)
        through_ids = [
            through.get(self.second_local_key)
            for through in through_query.where(
                self.first_key, get_field(record, self.local_key),
            ).get()
        ]

        related_query = Query(snapshot, self.related.entity)
        related_query.where_in(self.second_key, through_ids)

        self.add_constraint(related_query, loads)

        return related_query.get()

    def make(self, parent: Record, key: str) -> list[Model]:
        """Build one related instance per pending record, in input order."""
        records = self.records
        if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
            return []
        if len(records) == 0:
            return []
        if not _is_structured(records[0]):
            return []
        return [
            record if isinstance(record, self.related) else self.related(record)
            for record in records
        ]

    def __repr__(self) -> str:
        return (
            f"HasManyThrough({self.model.entity} -> {self.through.entity} "
            f"-> {self.related.entity})"
        )


def _is_structured(value: Any) -> bool:
    return isinstance(value, (Mapping, Model))
