import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from erdoc_core import (
    DocsConfig,
    GenerationError,
    ModelError,
    diagram_source,
    format_issues,
    generate_markdown_docs,
    has_errors,
    infer_implied_keys,
    load_config,
    load_database,
    load_yaml_document,
    reference_issues,
    render_diagram,
    schema_issues,
)
from erdoc_core.model import Database


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _config_from_args(args: argparse.Namespace) -> DocsConfig:
    config = load_config(getattr(args, "config", None))
    return config.merged(
        include_orphans=args.include_orphans,
        include_implied=args.include_implied,
        infer_implied=args.infer_implied or None,
        output_dir=getattr(args, "out", None),
    )


def _load(path: str, config: DocsConfig) -> Database:
    database = load_database(path)
    if config.infer_implied:
        inferred = infer_implied_keys(database)
        logging.getLogger(__name__).info("Inferred %d implied key(s)", len(inferred))
    return database


def cmd_validate(args: argparse.Namespace) -> int:
    document = load_yaml_document(args.schema_doc)
    issues = schema_issues(document)
    if not has_errors(issues):
        issues.extend(reference_issues(document))

    if not issues:
        print("No issues found.")
        return 0
    for line in format_issues(issues):
        print(line)
    return 1 if has_errors(issues) else 0


def cmd_diagram(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    try:
        database = _load(args.schema_doc, config)
    except ModelError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    tables = database.all_tables()
    render = diagram_source if args.no_fence else render_diagram
    output = render(tables, config.include_implied, config.include_orphans)

    if args.diagram_out:
        Path(args.diagram_out).write_text(output + "\n", encoding="utf-8")
        print(f"Wrote ER diagram: {args.diagram_out}")
    else:
        print(output)
    return 0


def cmd_docs(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    try:
        database = _load(args.schema_doc, config)
        written = generate_markdown_docs(
            database,
            database.all_tables(),
            config.output_dir,
            include_orphans=config.include_orphans,
            include_implied=config.include_implied,
        )
    except (ModelError, GenerationError) as exc:
        print(str(exc), file=sys.stderr)
        if exc.__cause__ is not None:
            print(f"  caused by: {exc.__cause__}", file=sys.stderr)
        return 1

    for path in written:
        print(f"Wrote {path}")
    return 0


def _add_diagram_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("schema_doc", help="Path to schema document YAML")
    orphans = parser.add_mutually_exclusive_group()
    orphans.add_argument(
        "--include-orphans", dest="include_orphans", action="store_const", const=True,
        help="Show tables without relationships in the diagram (default)",
    )
    orphans.add_argument(
        "--exclude-orphans", dest="include_orphans", action="store_const", const=False,
        help="Hide tables without relationships from the diagram",
    )
    implied = parser.add_mutually_exclusive_group()
    implied.add_argument(
        "--include-implied", dest="include_implied", action="store_const", const=True,
        help="Include implied (undeclared) foreign keys (default)",
    )
    implied.add_argument(
        "--exclude-implied", dest="include_implied", action="store_const", const=False,
        help="Leave implied foreign keys out of the output",
    )
    parser.add_argument(
        "--infer-implied", action="store_true",
        help="Infer implied foreign keys from column naming conventions",
    )
    parser.add_argument("--config", help="Path to erdoc.yaml configuration")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="erdoc", description="Markdown and Mermaid ER documentation for database schemas")
    sub = parser.add_subparsers(dest="command", required=True)

    validate_parser = sub.add_parser("validate", help="Validate a schema document")
    validate_parser.add_argument("schema_doc", help="Path to schema document YAML")
    validate_parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    validate_parser.set_defaults(func=cmd_validate)

    diagram_parser = sub.add_parser("diagram", help="Print the Mermaid ER diagram")
    _add_diagram_flags(diagram_parser)
    diagram_parser.add_argument("--out", dest="diagram_out", help="Write the diagram to a file")
    diagram_parser.add_argument("--no-fence", action="store_true", help="Omit the ```mermaid fence")
    diagram_parser.set_defaults(func=cmd_diagram)

    docs_parser = sub.add_parser("docs", help="Generate overview.md, er-diagram.md and tables.md")
    _add_diagram_flags(docs_parser)
    docs_parser.add_argument("--out", help="Output directory (documents go to <out>/markdown)")
    docs_parser.set_defaults(func=cmd_docs)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
