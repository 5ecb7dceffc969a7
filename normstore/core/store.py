"""Store Snapshot — normalized per-entity tables, passed explicitly to every query.

Invariants:
    - Table keys are str(primary key); one record per key, later payload wins
    - Normalized records hold attribute fields only — relation fields are
      offered to Relation.attach() and then dropped
    - Every registered entity has a table, possibly empty
    - A snapshot is never mutated after construction; queries clone on read

Design Decisions:
    - Frozen dataclass, not module state: callers hold and pass the snapshot
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from normstore.core.collection_utils import UNDEFINED, clone_deep, key_by
from normstore.core.domain_types import NormalizedData, Record, Table
from normstore.core.relation import Relation

if TYPE_CHECKING:
    from normstore.core.database import Database
    from normstore.core.model import Model


@dataclass(frozen=True)
class StoreSnapshot:
    """Read-only view of the normalized store plus the registry that shaped it."""
    data: NormalizedData
    database: "Database"

    def table(self, entity: str) -> Table:
        return self.data.get(entity, {})


def normalize(
    database: "Database", payload: Mapping[str, Iterable[Record] | Mapping[str, Record]],
) -> NormalizedData:
    """Build NormalizedData from raw records grouped by entity name.

    Each entity's records may be a list or an id-keyed mapping.
    """
    data: NormalizedData = {entity: {} for entity in database.entities()}
    for entity, records in payload.items():
        model = database.model(entity)
        rows = records.values() if isinstance(records, Mapping) else records
        prepared = [_prepare(model, record, data) for record in rows]
        table = data[model.entity]
        for record_id, record in key_by(prepared, model.primary_key).items():
            table[str(record_id)] = record
    return data


def _prepare(model: type["Model"], record: Record, data: NormalizedData) -> Record:
    """Fill attribute defaults and let each relation attach its key."""
    source = clone_deep(record)
    prepared: Record = {}
    for key, field in model.schema().items():
        value = source.get(key, UNDEFINED)
        if isinstance(field, Relation):
            field.attach(value, prepared, data)
            continue
        prepared[key] = field.make(value)
    return prepared
