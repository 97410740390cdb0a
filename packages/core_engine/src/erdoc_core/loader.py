from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from erdoc_core.model import Column, Database, ForeignKeyConstraint, ModelError, Table, TableIndex
from erdoc_core.schema import format_issues, has_errors, reference_issues, schema_issues


def load_yaml_document(path: str) -> Dict[str, Any]:
    """Parse a schema document. An empty file yields an empty mapping."""
    doc_path = Path(path)
    if not doc_path.is_file():
        raise FileNotFoundError(f"Schema document not found: {path}")

    data = yaml.safe_load(doc_path.read_text(encoding="utf-8"))
    if data is None:
        data = {}
    elif not isinstance(data, dict):
        raise ValueError(f"Schema document {path} must be a mapping, got {type(data).__name__}")
    return data


def _size(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _build_table(raw: Dict[str, Any], view: bool) -> Table:
    table = Table(
        name=raw.get("name"),
        schema=raw.get("schema"),
        catalog=raw.get("catalog"),
        comment=raw.get("comment"),
        num_rows=raw.get("rows") if raw.get("rows") is not None else -1,
        view=view,
        view_definition=raw.get("definition"),
        check_constraints=dict(raw.get("check_constraints") or {}),
    )

    for raw_col in raw.get("columns") or []:
        table.add_column(
            Column(
                name=raw_col.get("name"),
                type_name=raw_col.get("type"),
                size=_size(raw_col.get("size")),
                nullable=raw_col.get("nullable", True),
                primary=raw_col.get("primary_key", False),
                unique=raw_col.get("unique", False),
                default=raw_col.get("default"),
                comment=raw_col.get("comment"),
            )
        )

    for raw_idx in raw.get("indexes") or []:
        columns = []
        for entry in raw_idx.get("columns") or []:
            if isinstance(entry, dict):
                columns.append((entry["name"], entry.get("order", "asc")))
            else:
                columns.append((str(entry), "asc"))
        index = TableIndex(name=raw_idx.get("name", ""), unique=raw_idx.get("unique", False), columns=columns)
        table.indexes.append(index)

        # a unique index over a single column makes that column unique
        if index.unique and len(columns) == 1:
            column = table.column(columns[0][0])
            if column is not None:
                column.unique = True

    return table


def build_database(document: Dict[str, Any]) -> Database:
    """Build a linked Database from a parsed schema document."""
    meta = document.get("database") or {}
    database = Database(
        name=meta.get("name"),
        schema=meta.get("schema"),
        catalog=meta.get("catalog"),
    )

    database.tables = [_build_table(raw, view=False) for raw in document.get("tables") or []]
    database.views = [_build_table(raw, view=True) for raw in document.get("views") or []]

    raw_tables = (document.get("tables") or []) + (document.get("views") or [])
    for raw in raw_tables:
        for raw_fk in raw.get("foreign_keys") or []:
            ref = raw_fk.get("references") or {}
            name = None if raw_fk.get("implied") else raw_fk.get("name")
            database.add_foreign_key(
                ForeignKeyConstraint(
                    name=name,
                    child_table=raw.get("name"),
                    child_columns=list(raw_fk.get("columns") or []),
                    parent_table=ref.get("table", ""),
                    parent_columns=list(ref.get("columns") or []),
                    delete_rule=raw_fk.get("on_delete", "no_action"),
                )
            )

    return database


def load_database(path: str, validate: bool = True) -> Database:
    document = load_yaml_document(path)
    if validate:
        issues = schema_issues(document)
        if not has_errors(issues):
            issues.extend(reference_issues(document))
        if has_errors(issues):
            raise ModelError(f"Invalid schema document {path}:\n" + "\n".join(format_issues(issues)))
    return build_database(document)
