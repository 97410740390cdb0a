"""Mermaid ER diagram formatter.

Turns a collection of tables into ``erDiagram`` source: one block per table
and one line per distinct parent/child table pair.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, TextIO, Tuple

from erdoc_core.model import Column, Table

_IDENTIFIER_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


def sanitize_name(name: Optional[str]) -> str:
    """Make ``name`` a valid Mermaid identifier."""
    if not name:
        return "unknown"
    return _IDENTIFIER_UNSAFE.sub("_", name)


def escape_quotes(text: Optional[str]) -> str:
    """Escape free text placed inside a double-quoted Mermaid string."""
    if text is None:
        return ""
    return (
        text.replace('"', "'")
        .replace("|", "\\|")
        .replace("\n", " ")
        .replace("\r", "")
    )


def key_attributes(column: Column) -> List[str]:
    attributes = []
    if column.primary:
        attributes.append("PK")
    if column.foreign_key:
        attributes.append("FK")
    if column.unique and not column.primary:
        attributes.append("UK")
    return attributes


@dataclass(frozen=True)
class Relationship:
    parent_table: Optional[str]
    child_table: Optional[str]
    constraint_name: Optional[str] = None
    implied: bool = False

    @property
    def key(self) -> Tuple[str, str]:
        return ((self.parent_table or "").lower(), (self.child_table or "").lower())

    @property
    def label(self) -> str:
        label = escape_quotes(self.constraint_name) if self.constraint_name else "FK"
        if self.implied:
            label += " (implied)"
        return label


def included_tables(tables: Iterable[Table], include_implied: bool, include_orphans: bool) -> List[Table]:
    return [t for t in tables if include_orphans or not t.is_orphan(include_implied)]


def collect_relationships(tables: List[Table], include_implied: bool) -> List[Relationship]:
    """Resolve the distinct relationships among ``tables``, sorted by (parent, child)."""
    names = {t.name for t in tables}
    found: Dict[Tuple[str, str], Relationship] = {}

    for table in tables:
        for column in table.columns:
            for link in column.parents:
                constraint = link.constraint
                if constraint.implied and not include_implied:
                    continue
                if link.table not in names:
                    continue
                rel = Relationship(
                    parent_table=link.table,
                    child_table=table.name,
                    constraint_name=constraint.name,
                    implied=constraint.implied,
                )
                found.setdefault(rel.key, rel)

    return [found[key] for key in sorted(found)]


def _table_definition(table: Table) -> List[str]:
    lines = [f"    {sanitize_name(table.name)} {{"]
    for column in table.columns:
        parts = [sanitize_name(column.type_name), sanitize_name(column.name)]
        attributes = key_attributes(column)
        if attributes:
            parts.append(",".join(attributes))
        if column.comment:
            parts.append(f'"{escape_quotes(column.comment)}"')
        lines.append("        " + " ".join(parts))
    lines.append("    }")
    return lines


def _relationship_line(rel: Relationship) -> str:
    return (
        f"    {sanitize_name(rel.parent_table)} ||--o{{ "
        f'{sanitize_name(rel.child_table)} : "{rel.label}"'
    )


def diagram_source(
    tables: Iterable[Table],
    include_implied: bool = False,
    include_orphans: bool = True,
) -> str:
    """Return unfenced ``erDiagram`` source for ``tables``."""
    shown = included_tables(tables, include_implied, include_orphans)
    lines = ["erDiagram"]
    for table in shown:
        lines.extend(_table_definition(table))
    for rel in collect_relationships(shown, include_implied):
        lines.append(_relationship_line(rel))
    return "\n".join(lines)


def render_diagram(
    tables: Iterable[Table],
    include_implied: bool = False,
    include_orphans: bool = True,
) -> str:
    """Return the diagram wrapped in a ```mermaid fenced block."""
    return "\n".join(["```mermaid", diagram_source(tables, include_implied, include_orphans), "```"])


def write_er_diagram(
    tables: Iterable[Table],
    include_implied: bool,
    include_orphans: bool,
    handle: TextIO,
) -> None:
    handle.write(render_diagram(tables, include_implied, include_orphans))
    handle.write("\n")
