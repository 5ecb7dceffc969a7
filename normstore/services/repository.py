"""Repository — read API over a StoreSnapshot that returns hydrated models.

Invariants:
    - Never mutates the snapshot it wraps
    - NormStoreError is logged with its code and re-raised, never swallowed
    - find() returns None for a missing id; find_or_fail() raises RecordNotFoundError

Design Decisions:
    - Shell around the pure core: logging lives here, not in core/
    - Relation access by name goes through Query.with_(), so eager-load
      constraints behave the same as in hand-built queries
"""

import logging
from collections.abc import Callable
from typing import Any

from normstore.core.collection_utils import clone_deep, get_field, group_by
from normstore.core.errors import NormStoreError, RecordNotFoundError
from normstore.core.model import Model
from normstore.core.query import Query
from normstore.core.relation import Constraint
from normstore.core.store import StoreSnapshot

logger = logging.getLogger(__name__)


class Repository:
    """Entry point for reading models out of a snapshot."""

    def __init__(self, snapshot: StoreSnapshot):
        self.snapshot = snapshot

    def query(self, entity: type[Model] | str) -> Query:
        try:
            return Query(self.snapshot, entity)
        except NormStoreError as e:
            logger.error(
                "Query setup failed: %s", e.message,
                extra={"entity": _entity_name(entity), "error_code": e.code},
            )
            raise

    def all(self, entity: type[Model] | str) -> list[Model]:
        models = self.query(entity).make()
        logger.debug(
            "Loaded all records",
            extra={"entity": _entity_name(entity), "record_count": len(models)},
        )
        return models

    def find(self, entity: type[Model] | str, record_id: Any) -> Model | None:
        query = self.query(entity)
        record = self.snapshot.table(query.entity).get(str(record_id))
        if record is None:
            logger.debug("Record not found", extra={"entity": query.entity})
            return None
        return query.model(clone_deep(record))

    def find_or_fail(self, entity: type[Model] | str, record_id: Any) -> Model:
        model = self.find(entity, record_id)
        if model is None:
            error = RecordNotFoundError(_entity_name(entity), record_id)
            logger.warning(error.message, extra={"error_code": error.code})
            raise error
        return model

    def related(
        self,
        entity: type[Model] | str,
        record_id: Any,
        relation: str,
        constraint: Constraint | None = None,
    ) -> list[Model]:
        """Load one relation of one record, optionally shaped by constraint."""
        query = self.query(entity)
        pk = query.model.primary_key
        try:
            records = (
                query.where(lambda record: str(get_field(record, pk)) == str(record_id))
                .with_(relation, constraint)
                .get()
            )
        except NormStoreError as e:
            if e.context.relation is None:
                e.context.relation = relation
            logger.error(
                "Relation load failed: %s", e.message,
                extra={"entity": query.entity, "relation": relation, "error_code": e.code},
            )
            raise
        if not records:
            error = RecordNotFoundError(query.entity, record_id)
            logger.warning(
                error.message,
                extra={"entity": query.entity, "relation": relation, "error_code": error.code},
            )
            raise error
        models = getattr(query.model(records[0]), relation.split(".", 1)[0])
        logger.debug(
            "Loaded relation",
            extra={"entity": query.entity, "relation": relation, "record_count": len(models)},
        )
        return models

    def group(
        self, entity: type[Model] | str, iteratee: str | Callable[[Model], Any],
    ) -> dict[Any, list[Model]]:
        """Group all models of entity by a field name or callable."""
        key = iteratee if callable(iteratee) else (lambda model: get_field(model, iteratee))
        return group_by(self.all(entity), key)


def _entity_name(entity: type[Model] | str) -> str:
    return entity.entity if isinstance(entity, type) else str(entity)
