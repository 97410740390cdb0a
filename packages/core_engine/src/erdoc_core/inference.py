"""Implied foreign key inference for databases without declared constraints."""

import logging
import re
from typing import Dict, List, Optional

from erdoc_core.model import Database, ForeignKeyConstraint, Table

logger = logging.getLogger(__name__)

_REFERENCE_PATTERNS = (
    re.compile(r"^(?P<ref>.+?)_(?:id|fk)$", re.IGNORECASE),
    re.compile(r"^fk_(?P<ref>.+)$", re.IGNORECASE),
    re.compile(r"^(?P<ref>.+)Id$"),
)


def _fold(name: str) -> str:
    return re.sub(r"[\s_-]+", "", name).lower()


def _spellings(name: str) -> List[str]:
    """Singular and plural spellings tried when a column name has no exact table."""
    spellings = []
    if name.endswith("ies"):
        spellings.append(name[:-3] + "y")
    elif name.endswith(("ses", "xes", "zes")):
        spellings.append(name[:-2])
    if name.endswith("s"):
        if not name.endswith("ss"):
            spellings.append(name[:-1])
    else:
        spellings.append(name + "s")
        if name.endswith("y") and not name.endswith("ey"):
            spellings.append(name[:-1] + "ies")
    return spellings


def _table_lookup(tables: List[Table]) -> Dict[str, Table]:
    lookup = {_fold(table.name or ""): table for table in reversed(tables)}
    for table in tables:
        for spelling in _spellings(_fold(table.name or "")):
            lookup.setdefault(spelling, table)
    return lookup


def _referenced_name(column_name: str) -> Optional[str]:
    for pattern in _REFERENCE_PATTERNS:
        match = pattern.match(column_name)
        if match:
            return _fold(match.group("ref"))
    return None


def infer_implied_keys(database: Database) -> List[ForeignKeyConstraint]:
    """Add implied foreign keys for columns named after another table.

    A column ``author_id`` on ``posts`` becomes an implied reference to the
    primary key of ``author``/``authors`` when that table exists and has a
    single-column primary key. Primary key columns, columns that already
    reference something, and self references are left alone.

    Returns the constraints that were added.
    """
    tables = database.tables
    lookup = _table_lookup(tables)
    added: List[ForeignKeyConstraint] = []

    for table in tables:
        table_norm = _fold(table.name or "")
        for column in table.columns:
            if column.primary or column.foreign_key or not column.name:
                continue

            ref_norm = _referenced_name(column.name)
            if not ref_norm or ref_norm == table_norm:
                continue

            parent = lookup.get(ref_norm)
            if parent is None or parent is table:
                continue

            pk_columns = parent.primary_columns()
            if len(pk_columns) != 1:
                continue

            fk = database.add_foreign_key(
                ForeignKeyConstraint(
                    child_table=table.name,
                    child_columns=[column.name],
                    parent_table=parent.name,
                    parent_columns=[pk_columns[0].name],
                )
            )
            added.append(fk)
            logger.debug("Inferred implied key: %s.%s -> %s.%s", table.name, column.name, parent.name, pk_columns[0].name)

    return added
