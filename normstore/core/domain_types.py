"""Domain Types — shared aliases and enums for the normalized store.

Invariants:
    - Table identifiers are always strings (str() of the primary-key value)
    - NormalizedData never nests full records inside another record
    - All closed value sets encoded as Enums — no raw string matching

Design Decisions:
    - Type aliases over wrapper classes: records stay plain dicts end to end
    - str Enums: SortDirection.DESC == "desc", so callers may pass either form
"""

from enum import Enum
from typing import Any


# ─── Data Shapes ─────────────────────────────────────────────────

Record = dict[str, Any]
Table = dict[str, Record]
NormalizedData = dict[str, Table]
PlainCollection = list[Record]


# ─── Enums ───────────────────────────────────────────────────────

class SortDirection(str, Enum):
    """Direction accepted by order_by and Query.order_by."""
    ASC = "asc"
    DESC = "desc"


class RelationKind(str, Enum):
    """Closed set of relation variants. Each Relation subclass carries one."""
    HAS_MANY_THROUGH = "has_many_through"
