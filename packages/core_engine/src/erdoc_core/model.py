"""In-memory schema model consumed by the diagram and documentation writers.

A Database owns its tables, a Table owns its columns, indexes and the foreign
keys where it is the child. Columns refer to other columns through
``ColumnLink`` records holding table and column *names*, so the object graph
stays a tree.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

DELETE_RULE_NAMES = {
    "cascade": "Cascade on delete",
    "restrict": "Restrict delete",
    "no_action": "Restrict delete",
    "set_null": "Null on delete",
    "set_default": "Default on delete",
}


class ModelError(ValueError):
    """Raised when a schema document or a foreign key cannot be resolved."""


@dataclass
class ForeignKeyConstraint:
    child_table: str
    child_columns: List[str]
    parent_table: str
    parent_columns: List[str]
    name: Optional[str] = None
    delete_rule: str = "no_action"

    @property
    def implied(self) -> bool:
        return not self.name

    @property
    def delete_rule_name(self) -> str:
        return DELETE_RULE_NAMES.get(self.delete_rule, "")


@dataclass
class ColumnLink:
    table: str
    column: str
    constraint: ForeignKeyConstraint


@dataclass
class Column:
    name: Optional[str]
    type_name: Optional[str] = None
    table: Optional[str] = None
    size: Optional[str] = None
    nullable: bool = True
    primary: bool = False
    unique: bool = False
    default: Any = None
    comment: Optional[str] = None
    parents: List[ColumnLink] = field(default_factory=list)
    children: List[ColumnLink] = field(default_factory=list)

    @property
    def foreign_key(self) -> bool:
        return bool(self.parents)


@dataclass
class TableIndex:
    name: str
    unique: bool = False
    columns: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [name for name, _ in self.columns]


@dataclass
class Table:
    name: Optional[str]
    schema: Optional[str] = None
    catalog: Optional[str] = None
    columns: List[Column] = field(default_factory=list)
    indexes: List[TableIndex] = field(default_factory=list)
    check_constraints: Dict[str, str] = field(default_factory=dict)
    foreign_keys: List[ForeignKeyConstraint] = field(default_factory=list)
    comment: Optional[str] = None
    num_rows: int = -1
    view: bool = False
    view_definition: Optional[str] = None

    @property
    def type(self) -> str:
        return "View" if self.view else "Table"

    def add_column(self, column: Column) -> Column:
        column.table = self.name
        self.columns.append(column)
        return column

    def column(self, name: str) -> Optional[Column]:
        for col in self.columns:
            if col.name == name:
                return col
        lowered = name.lower()
        for col in self.columns:
            if (col.name or "").lower() == lowered:
                return col
        return None

    def primary_columns(self) -> List[Column]:
        return [col for col in self.columns if col.primary]

    def is_orphan(self, include_implied: bool) -> bool:
        """True when no column takes part in a counted relationship."""
        for col in self.columns:
            for link in col.parents + col.children:
                if include_implied or not link.constraint.implied:
                    return False
        return True


@dataclass
class Database:
    name: Optional[str]
    schema: Optional[str] = None
    catalog: Optional[str] = None
    tables: List[Table] = field(default_factory=list)
    views: List[Table] = field(default_factory=list)

    def all_tables(self) -> List[Table]:
        return self.tables + self.views

    def table(self, name: Optional[str]) -> Optional[Table]:
        candidates = self.all_tables()
        for tbl in candidates:
            if tbl.name == name:
                return tbl
        if name is None:
            return None
        lowered = name.lower()
        for tbl in candidates:
            if (tbl.name or "").lower() == lowered:
                return tbl
        return None

    def add_foreign_key(self, fk: ForeignKeyConstraint) -> ForeignKeyConstraint:
        """Attach ``fk`` to its child table and link both column endpoints."""
        if not fk.child_columns or len(fk.child_columns) != len(fk.parent_columns):
            raise ModelError(
                f"Foreign key {fk.name or '(implied)'} on {fk.child_table} must pair "
                "child and parent columns one to one."
            )

        child = self.table(fk.child_table)
        if child is None:
            raise ModelError(f"Unknown child table: {fk.child_table}")
        parent = self.table(fk.parent_table)
        if parent is None:
            raise ModelError(
                f"Foreign key {fk.name or '(implied)'} references unknown table: {fk.parent_table}"
            )

        pairs = []
        for child_name, parent_name in zip(fk.child_columns, fk.parent_columns):
            child_col = child.column(child_name)
            if child_col is None:
                raise ModelError(f"Unknown column: {child.name}.{child_name}")
            parent_col = parent.column(parent_name)
            if parent_col is None:
                raise ModelError(f"Unknown referenced column: {parent.name}.{parent_name}")
            pairs.append((child_col, parent_col))

        # store canonical names so later lookups by identifier are exact
        fk.child_table = child.name
        fk.parent_table = parent.name
        for child_col, parent_col in pairs:
            child_col.parents.append(ColumnLink(parent.name, parent_col.name, fk))
            parent_col.children.append(ColumnLink(child.name, child_col.name, fk))
        child.foreign_keys.append(fk)
        return fk
