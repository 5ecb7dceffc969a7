"""Relation Contract — the five-operation interface every relation variant implements.

Invariants:
    - A relation descriptor is created once per declaring model and never mutated
    - load() never mutates the store snapshot
    - Eager-load constraints are applied to the related query only, never to the
      pivot query

Design Decisions:
    - ABC with a `kind` tag: variants form a closed set (RelationKind), dispatched
      by the schema declaration, not by inspecting attribute shape
    - Dotted eager-load names ("posts.comments") are forwarded as a nested with_()
      on the related query; the constraint applies to the last segment only
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from normstore.core.domain_types import NormalizedData, PlainCollection, Record, RelationKind

if TYPE_CHECKING:
    from normstore.core.model import Model
    from normstore.core.query import Query
    from normstore.core.store import StoreSnapshot


Constraint = Callable[[Any], Any]  # receives the related Query


@dataclass(frozen=True)
class EagerLoad:
    """One with_() request: relation path plus optional query shaping."""
    name: str
    constraint: Constraint | None = None

    @property
    def head(self) -> str:
        return self.name.split(".", 1)[0]

    @property
    def rest(self) -> str:
        return self.name.partition(".")[2]


class Relation(ABC):
    """Base class for relation descriptors declared in Model.fields()."""

    kind: ClassVar[RelationKind]

    def __init__(self, model: type["Model"]):
        self.model = model

    @abstractmethod
    def set(self, value: Any) -> None:
        """Store the raw attribute value pending make()."""

    @abstractmethod
    def fill(self, value: Any) -> Any:
        """Return a well-typed default when value is absent."""

    @abstractmethod
    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """Stamp the relational key onto record during normalization."""

    @abstractmethod
    def load(
        self, snapshot: "StoreSnapshot", record: Record, loads: Sequence[EagerLoad] = (),
    ) -> PlainCollection:
        """Resolve related raw records for record."""

    @abstractmethod
    def make(self, parent: Record, key: str) -> list["Model"]:
        """Hydrate the pending value into model instances."""

    def add_constraint(self, query: "Query", loads: Sequence[EagerLoad]) -> None:
        """Apply caller-specified shaping and nested loads to the related query."""
        for load in loads:
            if load.rest:
                query.with_(load.rest, load.constraint)
            elif load.constraint is not None:
                load.constraint(query)
