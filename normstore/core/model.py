"""Model Declaration — entity schemas, attribute defaults and instance hydration.

Invariants:
    - fields() is evaluated once per model class; the resulting relation
      descriptors live as long as the class and are never mutated
    - Hydration works on a per-cycle copy of each relation descriptor, so the
      pending `records` value is never shared between parent instances
    - Attribute defaults are deep-cloned per instance

Design Decisions:
    - Declarative classmethod fields() (not class attributes): lets relations
      reference models by entity name before those models are registered
    - Entity names resolve through the Database the model is registered in;
      an unresolvable name raises UnknownEntityError and is not caught here
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from normstore.core.collection_utils import UNDEFINED, clone_deep
from normstore.core.errors import UnknownEntityError
from normstore.core.relation import Relation

if TYPE_CHECKING:
    from normstore.core.database import Database
    from normstore.core.has_many_through import HasManyThrough


@dataclass(frozen=True)
class Attr:
    """Plain attribute with a default used when the record omits the field."""
    default: Any = None

    def make(self, value: Any) -> Any:
        if value is UNDEFINED:
            return clone_deep(self.default)
        return value


Field = Attr | Relation


class Model:
    """Base class for store entities."""

    entity: ClassVar[str] = ""
    primary_key: ClassVar[str] = "id"
    database: ClassVar["Database | None"] = None

    def __init__(self, record: Any = None):
        data = record if isinstance(record, Mapping) else {}
        for key, field in self.schema().items():
            value = data.get(key, UNDEFINED)
            if isinstance(field, Relation):
                bound = copy.copy(field)
                bound.set(bound.fill(value))
                setattr(self, key, bound.make(data, key))
            else:
                setattr(self, key, field.make(value))

    # === Schema ===============================================================

    @classmethod
    def fields(cls) -> dict[str, Field]:
        """Declared by subclasses."""
        return {}

    @classmethod
    def schema(cls) -> dict[str, Field]:
        if "_schema" not in cls.__dict__:
            cls._schema = cls.fields()
        return cls._schema

    @classmethod
    def relations(cls) -> dict[str, Relation]:
        return {
            key: field for key, field in cls.schema().items()
            if isinstance(field, Relation)
        }

    @classmethod
    def relation(cls, entity: "type[Model] | str") -> "type[Model]":
        """Resolve a model class or entity name to a registered model class."""
        if isinstance(entity, type) and issubclass(entity, Model):
            return entity
        if cls.database is None:
            raise UnknownEntityError(entity)
        return cls.database.model(entity)

    # === Field helpers ========================================================

    @classmethod
    def attr(cls, default: Any = None) -> Attr:
        return Attr(default)

    @classmethod
    def has_many_through(
        cls,
        related: "type[Model] | str",
        through: "type[Model] | str",
        first_key: str,
        second_key: str,
        local_key: str | None = None,
        second_local_key: str | None = None,
    ) -> "HasManyThrough":
        """Declare a many-through relation.

        local_key defaults to this model's primary key; second_local_key to the
        through model's primary key.
        """
        # Deferred: has_many_through imports Model.
        from normstore.core.has_many_through import HasManyThrough

        return HasManyThrough(
            cls,
            related,
            through,
            first_key,
            second_key,
            local_key or cls.primary_key,
            second_local_key or cls.relation(through).primary_key,
        )

    # === Instance =============================================================

    def get_id(self) -> Any:
        return getattr(self, self.primary_key, None)

    def to_dict(self) -> dict:
        """Serialize to plain data, related instances included."""
        result = {}
        for key, field in self.schema().items():
            value = getattr(self, key)
            if isinstance(field, Relation):
                result[key] = [item.to_dict() for item in value]
            else:
                result[key] = clone_deep(value)
        return result

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.get_id()!r})"
