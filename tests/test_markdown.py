"""Tests for the three-document Markdown producer."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "packages" / "core_engine" / "src"))

from erdoc_core.loader import load_database
from erdoc_core.markdown import (
    NO_CONSTRAINTS_ROW,
    GenerationError,
    MarkdownProducer,
    anchor,
    escape_markdown,
    generate_er_diagram_doc,
    generate_markdown_docs,
    generate_overview,
    generate_tables_doc,
)
from erdoc_core.model import Column, Database, ForeignKeyConstraint, Table

BLOG_MODEL = str(ROOT / "model-examples" / "blog.schema.yaml")


def _blog():
    return load_database(BLOG_MODEL)


def _empty_db(**kwargs):
    return Database(name="testdb", **kwargs)


def _read(output_dir, name):
    return (Path(output_dir) / "markdown" / name).read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# File generation
# ---------------------------------------------------------------------------

class TestGenerate:
    def test_generates_three_files(self, tmp_path):
        written = generate_markdown_docs(_empty_db(), [], str(tmp_path))
        markdown_dir = tmp_path / "markdown"
        assert markdown_dir.is_dir()
        assert [p.name for p in written] == ["overview.md", "er-diagram.md", "tables.md"]
        for name in ("overview.md", "er-diagram.md", "tables.md"):
            assert (markdown_dir / name).exists()

    def test_existing_directory_is_reused(self, tmp_path):
        (tmp_path / "markdown").mkdir()
        generate_markdown_docs(_empty_db(), [], str(tmp_path))
        assert (tmp_path / "markdown" / "overview.md").exists()

    def test_producer_uses_its_flags(self, tmp_path):
        db = _blog()
        MarkdownProducer(include_orphans=False, include_implied=False).generate(db, db.all_tables(), str(tmp_path))
        diagram = _read(tmp_path, "er-diagram.md")
        assert "audit_log {" not in diagram
        assert "(implied)" not in diagram
        assert "(implied)" not in _read(tmp_path, "tables.md")

    def test_directory_failure_is_wrapped(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        with pytest.raises(GenerationError) as excinfo:
            generate_markdown_docs(_empty_db(), [], str(blocker))
        assert isinstance(excinfo.value.__cause__, OSError)
        assert excinfo.value.stage == "creating output directory"

    def test_write_failure_aborts_and_keeps_earlier_files(self, tmp_path):
        (tmp_path / "markdown" / "tables.md").mkdir(parents=True)
        with pytest.raises(GenerationError) as excinfo:
            generate_markdown_docs(_empty_db(), [], str(tmp_path))
        assert excinfo.value.stage == "writing tables.md"
        assert isinstance(excinfo.value.__cause__, OSError)
        assert (tmp_path / "markdown" / "overview.md").is_file()
        assert (tmp_path / "markdown" / "er-diagram.md").is_file()


# ---------------------------------------------------------------------------
# overview.md
# ---------------------------------------------------------------------------

class TestOverview:
    def test_header_and_links(self):
        content = generate_overview(_empty_db())
        assert "# Database Schema: testdb" in content
        assert "## Overview" in content
        assert "## Related Files" in content
        assert "- [ER Diagram](er-diagram.md)" in content
        assert "- [Table Details](tables.md)" in content

    def test_unnamed_database(self):
        db = Database(name=None)
        assert "# Database Schema: unknown" in generate_overview(db)
        assert "| Database Name | unknown |" in generate_overview(db)
        assert "Database: **unknown**" in generate_er_diagram_doc(db, [])
        assert "Database: **unknown**" in generate_tables_doc(db, [])

    def test_optional_schema_and_catalog_omitted(self):
        content = generate_overview(_empty_db())
        assert "| Schema |" not in content
        assert "| Catalog |" not in content

    def test_counts_and_metadata(self):
        content = generate_overview(_blog(), generated_at=datetime(2024, 1, 2, 3, 4, 5))
        assert "| Database Name | blog |" in content
        assert "| Schema | public |" in content
        assert "| Catalog | blogdb |" in content
        assert "| Tables | 4 |" in content
        assert "| Views | 1 |" in content
        assert "| Generated | 2024-01-02 03:04:05 |" in content

    def test_ends_with_navigation(self):
        content = generate_overview(_empty_db())
        assert content.rstrip("\n").endswith("---\n\n[ER Diagram](er-diagram.md) | [Table Details](tables.md)")


# ---------------------------------------------------------------------------
# er-diagram.md
# ---------------------------------------------------------------------------

class TestErDiagramDoc:
    def test_no_tables_notice(self):
        content = generate_er_diagram_doc(_empty_db(), [])
        assert "# Entity Relationship Diagram" in content
        assert "Database: **testdb**" in content
        assert "*No tables found.*" in content
        assert "```mermaid" in content
        assert "{" not in content

    def test_embeds_diagram(self):
        db = _blog()
        content = generate_er_diagram_doc(db, db.all_tables())
        assert "*No tables found.*" not in content
        assert "```mermaid\nerDiagram\n" in content
        assert '    users ||--o{ posts : "fk_posts_author"' in content
        assert '    posts ||--o{ comments : "FK (implied)"' in content

    def test_relationship_lines_are_sorted(self):
        db = _blog()
        content = generate_er_diagram_doc(db, db.all_tables())
        rel_lines = [line for line in content.splitlines() if "||--o{" in line]
        assert rel_lines == [
            '    posts ||--o{ comments : "FK (implied)"',
            '    users ||--o{ posts : "fk_posts_author"',
        ]

    def test_comment_escaped_in_diagram(self):
        db = _blog()
        content = generate_er_diagram_doc(db, db.all_tables())
        assert '        varchar_255_ email UK "Login \\| contact address"' in content

    def test_navigation(self):
        content = generate_er_diagram_doc(_empty_db(), [])
        assert "[Back to Overview](overview.md) | [Table Details](tables.md)" in content
        assert "---" in content


# ---------------------------------------------------------------------------
# tables.md
# ---------------------------------------------------------------------------

class TestTablesDoc:
    def test_no_tables_still_has_foreign_key_section(self):
        content = generate_tables_doc(_empty_db(), [])
        assert "*No tables found.*" in content
        assert "## Table of Contents" not in content
        assert "## Foreign Key Constraints" in content
        assert NO_CONSTRAINTS_ROW in content

    def test_table_of_contents(self):
        db = _blog()
        content = generate_tables_doc(db, db.all_tables())
        assert "## Table of Contents" in content
        assert "- [users](#users)" in content
        assert "- [audit-log](#audit-log)" in content
        assert "- [recent_posts](#recent-posts)" in content

    def test_anchor(self):
        assert anchor("My Table.v2") == "my-table-v2"
        assert anchor(None) == "unknown"

    def test_table_section(self):
        db = _blog()
        content = generate_tables_doc(db, db.all_tables())
        assert "## users" in content
        assert "> Registered accounts" in content
        assert "**Type:** Table | **Rows:** 42" in content
        assert "| Column | Type | Size | Nullable | Key | Default | Comment |" in content
        assert "| id | int | 10 | NO | PK | - | - |" in content
        assert "| email | varchar(255) | 255 | NO | UK | - | Login \\| contact address |" in content
        assert "| created_at | timestamp | - | YES | - | now() | - |" in content
        assert "| author_id | int | - | NO | FK | - | - |" in content

    def test_unknown_row_count_omitted(self):
        db = _blog()
        content = generate_tables_doc(db, db.all_tables())
        lines = content.splitlines()
        comments_at = lines.index("## comments")
        assert lines[comments_at + 2] == "**Type:** Table"

    def test_indexes_and_check_constraints(self):
        db = _blog()
        content = generate_tables_doc(db, db.all_tables())
        assert "### Indexes" in content
        assert "| users_email_uq | email | YES |" in content
        assert "| posts_author_idx | author_id, id | NO |" in content
        assert "### Check Constraints" in content
        assert "| chk_email_format | email LIKE '%@%' |" in content

    def test_view_definition(self):
        db = _blog()
        content = generate_tables_doc(db, db.all_tables())
        assert "**Type:** View" in content
        assert "### View Definition" in content
        assert "```sql\nSELECT p.id, p.title\nFROM posts p\nORDER BY p.id DESC\n\n```" in content

    def test_foreign_keys_listed_per_constraint(self):
        db = _blog()
        content = generate_tables_doc(db, db.all_tables())
        assert "| Constraint | Child Table | Child Column(s) | Parent Table | Parent Column(s) | On Delete |" in content
        assert "| fk_posts_author | posts | author_id | users | id | Cascade on delete |" in content
        assert "| fk_posts_editor | posts | editor_id | users | id | Null on delete |" in content
        assert "| (implied) | comments | post_id | posts | id | Restrict delete |" in content
        assert NO_CONSTRAINTS_ROW not in content

    def test_dedup_differs_between_documents(self):
        db = _blog()
        diagram = generate_er_diagram_doc(db, db.all_tables())
        tables = generate_tables_doc(db, db.all_tables())
        assert diagram.count("users ||--o{ posts") == 1
        assert tables.count("| users | id |") == 2

    def test_implied_constraints_excluded(self):
        db = _blog()
        content = generate_tables_doc(db, db.all_tables(), include_implied=False)
        assert "(implied)" not in content
        assert "| fk_posts_author |" in content

    def test_escaping_in_cells(self):
        table = Table(name="t|x", comment="first\nsecond")
        table.add_column(Column("c", "int", comment="a|b\nc"))
        content = generate_tables_doc(_empty_db(), [table])
        assert "## t\\|x" in content
        assert "> first second" in content
        assert "| c | int | - | YES | - | - | a\\|b c |" in content

    def test_missing_values_render_placeholders(self):
        table = Table(name="t")
        table.add_column(Column(None, None))
        content = generate_tables_doc(_empty_db(), [table])
        assert "| unknown | - | - | YES | - | - | - |" in content

    def test_boolean_default_is_lowercase(self):
        table = Table(name="t")
        table.add_column(Column("active", "boolean", default=True))
        table.add_column(Column("deleted", "boolean", default=False))
        content = generate_tables_doc(_empty_db(), [table])
        assert "| active | boolean | - | YES | - | true | - |" in content
        assert "| deleted | boolean | - | YES | - | false | - |" in content

    def test_unnamed_table_in_foreign_key_row(self):
        parent = Table(name="p")
        parent.add_column(Column("id", "int", primary=True))
        child = Table(name=None)
        child.add_column(Column("p_id", "int"))
        db = Database(name="d", tables=[parent, child])
        db.add_foreign_key(ForeignKeyConstraint(None, ["p_id"], "p", ["id"], name="fk_p"))
        content = generate_tables_doc(db, db.tables)
        assert "| fk_p | unknown | p_id | p | id | Restrict delete |" in content

    def test_composite_foreign_key_row(self):
        parent = Table(name="p")
        parent.add_column(Column("a", "int", primary=True))
        parent.add_column(Column("b", "int", primary=True))
        child = Table(name="c")
        child.add_column(Column("pa", "int"))
        child.add_column(Column("pb", "int"))
        db = Database(name="d", tables=[parent, child])
        db.add_foreign_key(ForeignKeyConstraint("c", ["pa", "pb"], "p", ["a", "b"], name="fk_c_p", delete_rule="restrict"))
        content = generate_tables_doc(db, db.tables)
        assert "| fk_c_p | c | pa, pb | p | a, b | Restrict delete |" in content

    def test_navigation(self):
        content = generate_tables_doc(_empty_db(), [])
        assert content.rstrip("\n").endswith("[Back to Overview](overview.md) | [ER Diagram](er-diagram.md)")


def test_escape_markdown():
    assert escape_markdown("a|b\r\nc") == "a\\|b c"
    assert escape_markdown(None) == ""
    assert escape_markdown(5) == "5"
