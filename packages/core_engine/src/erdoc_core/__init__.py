from erdoc_core.config import DocsConfig, load_config
from erdoc_core.inference import infer_implied_keys
from erdoc_core.loader import build_database, load_database, load_yaml_document
from erdoc_core.markdown import (
    GenerationError,
    MarkdownProducer,
    generate_er_diagram_doc,
    generate_markdown_docs,
    generate_overview,
    generate_tables_doc,
)
from erdoc_core.mermaid import Relationship, collect_relationships, diagram_source, render_diagram
from erdoc_core.model import (
    Column,
    ColumnLink,
    Database,
    ForeignKeyConstraint,
    ModelError,
    Table,
    TableIndex,
)
from erdoc_core.schema import Issue, format_issues, has_errors, load_schema, reference_issues, schema_issues

__all__ = [
    "build_database",
    "collect_relationships",
    "Column",
    "ColumnLink",
    "Database",
    "diagram_source",
    "DocsConfig",
    "ForeignKeyConstraint",
    "format_issues",
    "generate_er_diagram_doc",
    "generate_markdown_docs",
    "generate_overview",
    "generate_tables_doc",
    "GenerationError",
    "has_errors",
    "infer_implied_keys",
    "Issue",
    "load_config",
    "load_database",
    "load_schema",
    "load_yaml_document",
    "MarkdownProducer",
    "ModelError",
    "reference_issues",
    "Relationship",
    "render_diagram",
    "schema_issues",
    "Table",
    "TableIndex",
]
