"""Markdown documentation generator.

Writes three linked documents into ``<output_dir>/markdown``:
- overview.md: database metadata
- er-diagram.md: Mermaid ER diagram
- tables.md: per-table details and foreign key constraints
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional

from erdoc_core.mermaid import key_attributes, render_diagram
from erdoc_core.model import Column, Database, ForeignKeyConstraint, Table, TableIndex

logger = logging.getLogger(__name__)

MARKDOWN_DIR = "markdown"
OVERVIEW_FILE = "overview.md"
ER_DIAGRAM_FILE = "er-diagram.md"
TABLES_FILE = "tables.md"

NO_TABLES = "*No tables found.*"
NO_CONSTRAINTS_ROW = "| *No foreign key constraints* | | | | | |"


class GenerationError(Exception):
    """Raised when a Markdown document cannot be written."""

    def __init__(self, stage: str, path: Path):
        super().__init__(f"Failed to generate Markdown documentation ({stage}: {path})")
        self.stage = stage
        self.path = path


def escape_markdown(text: Any) -> str:
    """Make ``text`` safe for a table cell or inline text."""
    if text is None:
        return ""
    return str(text).replace("|", "\\|").replace("\n", " ").replace("\r", "")


def _name(value: Optional[str]) -> str:
    return escape_markdown(value) if value is not None else "unknown"


def _cell(value: Any) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, bool):
        return "true" if value else "false"
    return escape_markdown(value)


def anchor(name: Optional[str]) -> str:
    return re.sub(r"[^a-z0-9]", "-", (name or "unknown").lower())


def _nav(*targets: str) -> List[str]:
    labels = {
        OVERVIEW_FILE: "Back to Overview",
        ER_DIAGRAM_FILE: "ER Diagram",
        TABLES_FILE: "Table Details",
    }
    return ["---", "", " | ".join(f"[{labels[t]}]({t})" for t in targets)]


# ---------------------------------------------------------------------------
# Document builders
# ---------------------------------------------------------------------------

def generate_overview(database: Database, generated_at: Optional[datetime] = None) -> str:
    stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    name = _name(database.name)

    lines = [f"# Database Schema: {name}", "", "## Overview", ""]
    lines.append("| Property | Value |")
    lines.append("|----------|-------|")
    lines.append(f"| Database Name | {name} |")
    if database.schema is not None:
        lines.append(f"| Schema | {escape_markdown(database.schema)} |")
    if database.catalog is not None:
        lines.append(f"| Catalog | {escape_markdown(database.catalog)} |")
    lines.append(f"| Tables | {len(database.tables)} |")
    lines.append(f"| Views | {len(database.views)} |")
    lines.append(f"| Generated | {stamp} |")
    lines.append("")
    lines.append("## Related Files")
    lines.append("")
    lines.append(f"- [ER Diagram]({ER_DIAGRAM_FILE})")
    lines.append(f"- [Table Details]({TABLES_FILE})")
    lines.append("")
    lines.extend(_nav(ER_DIAGRAM_FILE, TABLES_FILE))
    return "\n".join(lines) + "\n"


def generate_er_diagram_doc(
    database: Database,
    tables: List[Table],
    include_orphans: bool = True,
    include_implied: bool = True,
) -> str:
    lines = ["# Entity Relationship Diagram", ""]
    lines.append(f"Database: **{_name(database.name)}**")
    lines.append("")

    if not tables:
        lines.append(NO_TABLES)
        lines.append("")
    lines.append(render_diagram(tables, include_implied, include_orphans))
    lines.append("")

    lines.extend(_nav(OVERVIEW_FILE, TABLES_FILE))
    return "\n".join(lines) + "\n"


def _column_row(column: Column) -> str:
    keys = ", ".join(key_attributes(column)) or "-"
    return (
        f"| {_name(column.name)} | {_cell(column.type_name)} | {_cell(column.size)} | "
        f"{'YES' if column.nullable else 'NO'} | {keys} | {_cell(column.default)} | "
        f"{_cell(column.comment)} |"
    )


def _index_row(index: TableIndex) -> str:
    columns = ", ".join(index.column_names)
    return f"| {escape_markdown(index.name)} | {escape_markdown(columns)} | {'YES' if index.unique else 'NO'} |"


def _table_section(table: Table) -> List[str]:
    lines = [f"## {_name(table.name)}", ""]

    if table.comment:
        lines.append(f"> {escape_markdown(table.comment)}")
        lines.append("")

    type_line = f"**Type:** {table.type}"
    if table.num_rows is not None and table.num_rows >= 0:
        type_line += f" | **Rows:** {table.num_rows}"
    lines.append(type_line)
    lines.append("")

    if table.columns:
        lines.append("### Columns")
        lines.append("")
        lines.append("| Column | Type | Size | Nullable | Key | Default | Comment |")
        lines.append("|--------|------|------|----------|-----|---------|---------|")
        for column in table.columns:
            lines.append(_column_row(column))
        lines.append("")

    if table.indexes:
        lines.append("### Indexes")
        lines.append("")
        lines.append("| Name | Columns | Unique |")
        lines.append("|------|---------|--------|")
        for index in table.indexes:
            lines.append(_index_row(index))
        lines.append("")

    if table.check_constraints:
        lines.append("### Check Constraints")
        lines.append("")
        lines.append("| Name | Definition |")
        lines.append("|------|------------|")
        for name, definition in table.check_constraints.items():
            lines.append(f"| {escape_markdown(name)} | {escape_markdown(definition)} |")
        lines.append("")

    if table.view and table.view_definition is not None:
        lines.append("### View Definition")
        lines.append("")
        lines.append("```sql")
        lines.append(table.view_definition)
        lines.append("```")
        lines.append("")

    lines.append("---")
    lines.append("")
    return lines


def _foreign_key_row(fk: ForeignKeyConstraint) -> str:
    name = fk.name if fk.name else "(implied)"
    return (
        f"| {escape_markdown(name)} | {_name(fk.child_table)} | "
        f"{escape_markdown(', '.join(fk.child_columns))} | {_name(fk.parent_table)} | "
        f"{escape_markdown(', '.join(fk.parent_columns))} | {fk.delete_rule_name} |"
    )


def _foreign_key_section(tables: Iterable[Table], include_implied: bool) -> List[str]:
    lines = ["## Foreign Key Constraints", ""]
    lines.append("| Constraint | Child Table | Child Column(s) | Parent Table | Parent Column(s) | On Delete |")
    lines.append("|------------|-------------|-----------------|--------------|------------------|-----------|")

    rows = [
        _foreign_key_row(fk)
        for table in tables
        for fk in table.foreign_keys
        if include_implied or not fk.implied
    ]
    lines.extend(rows or [NO_CONSTRAINTS_ROW])
    lines.append("")
    return lines


def generate_tables_doc(database: Database, tables: List[Table], include_implied: bool = True) -> str:
    lines = ["# Table Details", ""]
    lines.append(f"Database: **{_name(database.name)}**")
    lines.append("")

    if not tables:
        lines.append(NO_TABLES)
        lines.append("")
    else:
        lines.append("## Table of Contents")
        lines.append("")
        for table in tables:
            lines.append(f"- [{_name(table.name)}](#{anchor(table.name)})")
        lines.append("")
        for table in tables:
            lines.extend(_table_section(table))

    lines.extend(_foreign_key_section(tables, include_implied))
    lines.extend(_nav(OVERVIEW_FILE, ER_DIAGRAM_FILE))
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# File writers
# ---------------------------------------------------------------------------

def _write_document(path: Path, content: str) -> Path:
    logger.info("  - %s", path.name)
    try:
        with path.open("w", encoding="utf-8") as handle:
            handle.write(content)
    except OSError as exc:
        raise GenerationError(f"writing {path.name}", path) from exc
    return path


def generate_markdown_docs(
    database: Database,
    tables: Iterable[Table],
    output_dir: str,
    include_orphans: bool = True,
    include_implied: bool = True,
) -> List[Path]:
    """Write overview.md, er-diagram.md and tables.md. Returns the written paths."""
    tables = list(tables)
    markdown_dir = Path(output_dir) / MARKDOWN_DIR
    try:
        markdown_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise GenerationError("creating output directory", markdown_dir) from exc

    logger.info("Generating Markdown documentation in: %s", markdown_dir.resolve())

    written = [
        _write_document(markdown_dir / OVERVIEW_FILE, generate_overview(database)),
        _write_document(
            markdown_dir / ER_DIAGRAM_FILE,
            generate_er_diagram_doc(database, tables, include_orphans, include_implied),
        ),
        _write_document(markdown_dir / TABLES_FILE, generate_tables_doc(database, tables, include_implied)),
    ]

    logger.info("Markdown documentation generated successfully (%d files)", len(written))
    return written


class MarkdownProducer:
    """Markdown producer bound to a diagram configuration."""

    def __init__(self, include_orphans: bool = True, include_implied: bool = True):
        self.include_orphans = include_orphans
        self.include_implied = include_implied

    def generate(self, database: Database, tables: Iterable[Table], output_dir: str) -> List[Path]:
        return generate_markdown_docs(
            database,
            tables,
            output_dir,
            include_orphans=self.include_orphans,
            include_implied=self.include_implied,
        )
