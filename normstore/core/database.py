"""Model Registry — resolves entity names and model classes to registered models.

Invariants:
    - One model per entity name; registering again replaces the earlier model
    - model() never returns None: unknown references raise UnknownEntityError
"""

from collections.abc import Iterable, Mapping
from typing import Any

from normstore.core.errors import UnknownEntityError
from normstore.core.model import Model
from normstore.core.store import StoreSnapshot, normalize


class Database:
    """Registry of model classes, keyed by entity name."""

    def __init__(self, models: Iterable[type[Model]] = ()):
        self._models: dict[str, type[Model]] = {}
        self.register(*models)

    def register(self, *models: type[Model]) -> "Database":
        for model in models:
            if not model.entity:
                raise UnknownEntityError(model.__name__)
            model.database = self
            self._models[model.entity] = model
        return self

    def model(self, entity: "type[Model] | str") -> type[Model]:
        name = entity.entity if isinstance(entity, type) and issubclass(entity, Model) else entity
        try:
            return self._models[name]
        except KeyError:
            raise UnknownEntityError(entity) from None

    def entities(self) -> list[str]:
        return list(self._models)

    def snapshot(self, payload: Mapping[str, Any] | None = None) -> StoreSnapshot:
        """Normalize raw per-entity payload into an immutable snapshot."""
        return StoreSnapshot(data=normalize(self, payload or {}), database=self)
