"""JSON Schema validation for schema documents."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from jsonschema import Draft202012Validator

SCHEMA_FILE = Path(__file__).resolve().parent / "schemas" / "database.schema.json"


@dataclass(frozen=True)
class Issue:
    severity: str
    code: str
    message: str
    path: str = "/"


def has_errors(issues: Iterable[Issue]) -> bool:
    return any(issue.severity == "error" for issue in issues)


def format_issues(issues: Iterable[Issue]) -> List[str]:
    return [f"[{i.severity.upper()}] {i.code} {i.path}: {i.message}" for i in issues]


def load_schema(schema_path: Optional[str] = None) -> Dict[str, Any]:
    """Load a JSON schema; defaults to the bundled schema-document schema."""
    path = Path(schema_path) if schema_path else SCHEMA_FILE
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _json_path(parts: List[Any]) -> str:
    return "/" + "/".join(str(part) for part in parts)


def schema_issues(document: Dict[str, Any], schema: Optional[Dict[str, Any]] = None) -> List[Issue]:
    validator = Draft202012Validator(schema if schema is not None else load_schema())
    return [
        Issue(
            severity="error",
            code="SCHEMA_VALIDATION_FAILED",
            message=error.message,
            path=_json_path(list(error.absolute_path)),
        )
        for error in sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path])
    ]


def _sections(document: Dict[str, Any]):
    for section in ("tables", "views"):
        for t_idx, table in enumerate(document.get(section) or []):
            yield section, t_idx, table


def reference_issues(document: Dict[str, Any]) -> List[Issue]:
    """Report foreign keys that point at tables or columns the document does not declare."""
    columns_by_table: Dict[str, set] = {
        str(table.get("name", "")).lower(): {str(c.get("name", "")).lower() for c in table.get("columns") or []}
        for _, _, table in _sections(document)
    }

    issues: List[Issue] = []
    for section, t_idx, table in _sections(document):
        own_columns = columns_by_table.get(str(table.get("name", "")).lower(), set())
        for f_idx, fk in enumerate(table.get("foreign_keys") or []):
            path = f"/{section}/{t_idx}/foreign_keys/{f_idx}"
            child_cols = fk.get("columns") or []
            ref = fk.get("references") or {}
            parent_cols = ref.get("columns") or []
            parent_name = str(ref.get("table", ""))

            if len(child_cols) != len(parent_cols):
                issues.append(Issue("error", "FK_COLUMN_COUNT_MISMATCH",
                                    f"{len(child_cols)} column(s) reference {len(parent_cols)} column(s)", path))
            for col in child_cols:
                if str(col).lower() not in own_columns:
                    issues.append(Issue("error", "FK_UNKNOWN_COLUMN",
                                        f"Column '{col}' is not declared on table '{table.get('name')}'", path))
            parent_columns = columns_by_table.get(parent_name.lower())
            if parent_columns is None:
                issues.append(Issue("error", "FK_UNKNOWN_TABLE", f"Referenced table '{parent_name}' does not exist", path))
                continue
            for col in parent_cols:
                if str(col).lower() not in parent_columns:
                    issues.append(Issue("error", "FK_UNKNOWN_COLUMN",
                                        f"Referenced column '{parent_name}.{col}' does not exist", path))
    return issues
