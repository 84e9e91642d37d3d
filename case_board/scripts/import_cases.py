#!/usr/bin/env python3
"""CLI entrypoint for importing test-case documents."""
from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any

from case_board.case_importer import loader, parser, reconcile, renderer, store
from case_board.case_importer.classifier import resolve_parser_config

DEFAULT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_STORE = DEFAULT_ROOT / "case_board" / "_data" / "store.json"
DEFAULT_PAGE_NAME = "UnknownPage"
NO_CASES_MESSAGE = (
    "No test cases found in {file}. "
    "Expected headings such as '#### TC-XX-001: Title'."
)

logger = logging.getLogger("case_board.case_importer.cli")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def resolve_store_path(path: str | None) -> Path:
    if path:
        return Path(path).expanduser().resolve()
    env_value = os.environ.get("CASE_BOARD_STORE")
    if env_value:
        return Path(env_value).expanduser().resolve()
    return DEFAULT_STORE


def open_store(path: Path) -> dict[str, Any]:
    try:
        return store.load_store(path)
    except store.SnapshotError as exc:
        raise SystemExit(f"Store at {path} is unreadable: {exc}") from exc


def read_and_parse(file: str) -> tuple[str, parser.ParseResult]:
    try:
        text = loader.read_document(file)
    except loader.DocumentReadError as exc:
        raise SystemExit(str(exc)) from exc
    result = parser.parse_markdown_test_cases(text, resolve_parser_config())
    if result.is_empty:
        raise SystemExit(NO_CASES_MESSAGE.format(file=file))
    return text, result


def require_page(data: dict[str, Any], ident: str) -> str:
    page = store.resolve_page(data, ident)
    if page is None:
        raise SystemExit(f"Page not found: {ident}")
    return page.id


def command_parse(args: argparse.Namespace) -> None:
    text, result = read_and_parse(args.file)
    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return
    display_name = parser.extract_page_display_name(text) or "-"
    print("Page:", display_name)
    print("Test cases:", len(result.test_cases))
    print("Categories:")
    for path in result.categories:
        print("  " + " > ".join(path))
    print()
    print("Code".ljust(16), "Priority".ljust(9), "Steps".ljust(6), "Title")
    print("-" * 72)
    for case in result.test_cases:
        print(
            case.code.ljust(16),
            case.priority.ljust(9),
            str(len(case.steps)).ljust(6),
            case.title,
        )


def command_import(args: argparse.Namespace) -> None:
    store_path = resolve_store_path(args.store)
    text, result = read_and_parse(args.file)
    page_name = (
        args.page_name or loader.extract_page_name_from_path(args.file) or DEFAULT_PAGE_NAME
    )
    display_name = args.display_name or parser.extract_page_display_name(text) or page_name
    data = open_store(store_path)
    outcome = reconcile.import_test_cases(
        result.test_cases,
        page_name=page_name,
        page_display_name=display_name,
        pages=store.pages_of(data),
        categories=store.categories_of(data),
        test_cases=store.cases_of(data),
        target_page_id=args.page_id,
    )
    store.apply_import(data, outcome)
    store.save_store(store_path, data)
    logger.info(
        "Imported %s into page %s. Created: %d, Updated: %d",
        args.file,
        outcome.page_id,
        outcome.created,
        outcome.updated,
    )


def command_status(args: argparse.Namespace) -> None:
    store_path = resolve_store_path(args.store)
    data = open_store(store_path)
    page_id = require_page(data, args.page)
    case = store.find_test_case(data, page_id, args.code)
    if case is None:
        raise SystemExit(f"Test case {args.code} not found in page {args.page}")
    updated = store.update_test_case_status(data, case.id, args.status, notes=args.notes)
    store.save_store(store_path, data)
    logger.info("%s is now %s", updated.code, renderer.status_label(updated.status))


def command_stats(args: argparse.Namespace) -> None:
    data = open_store(resolve_store_path(args.store))
    page_id = require_page(data, args.page) if args.page else None
    stats = store.get_statistics(data, page_id)
    for key in ("total", "pending", "failed", "passed"):
        print(key.ljust(10), stats[key])


def command_render(args: argparse.Namespace) -> None:
    data = open_store(resolve_store_path(args.store))
    page_id = require_page(data, args.page)
    output = Path(args.output).expanduser().resolve() if args.output else None
    content = renderer.render_page_report(data, page_id, output)
    if output is None:
        print(content)
    else:
        logger.info("Report written to %s (%d characters)", output, len(content))


def command_export(args: argparse.Namespace) -> None:
    data = open_store(resolve_store_path(args.store))
    target = Path(args.path).expanduser().resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(store.export_data(data), encoding="utf-8")
    logger.info("Exported %d test cases to %s", len(data["testCases"]), target)


def command_restore(args: argparse.Namespace) -> None:
    store_path = resolve_store_path(args.store)
    source = Path(args.path).expanduser()
    if not source.exists():
        raise SystemExit(f"Backup not found: {source}")
    try:
        data = store.import_data(source.read_text(encoding="utf-8"))
    except store.SnapshotError as exc:
        raise SystemExit(f"Invalid backup {source}: {exc}") from exc
    store.save_store(store_path, data)
    logger.info(
        "Restored %d pages and %d test cases", len(data["pages"]), len(data["testCases"])
    )


def command_delete_page(args: argparse.Namespace) -> None:
    store_path = resolve_store_path(args.store)
    data = open_store(store_path)
    page_id = require_page(data, args.page)
    removed = store.delete_page(data, page_id)
    store.save_store(store_path, data)
    logger.info(
        "Deleted page %s with %d categories and %d test cases",
        page_id,
        removed["categories"],
        removed["testCases"],
    )


def build_parser() -> argparse.ArgumentParser:
    parser_obj = argparse.ArgumentParser(description="Import Markdown test-case documents")
    parser_obj.add_argument("--store", help="Collection file (defaults to CASE_BOARD_STORE)")
    parser_obj.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser_obj.add_subparsers(dest="command")

    parse_parser = subparsers.add_parser("parse", help="Preview the test cases in a document")
    parse_parser.add_argument("file", help="Document to parse (.md, .txt, .html, .docx)")
    parse_parser.add_argument("--json", action="store_true", help="Print the parse result as JSON")
    parse_parser.set_defaults(func=command_parse)

    import_parser = subparsers.add_parser("import", help="Import a document into a page")
    import_parser.add_argument("file", help="Document to import")
    import_parser.add_argument("--page-id", help="Existing page id to import into")
    import_parser.add_argument("--page-name", help="Page identifier, e.g. LoginPage")
    import_parser.add_argument("--display-name", help="Human readable page name")
    import_parser.set_defaults(func=command_import)

    status_parser = subparsers.add_parser("status", help="Record a test outcome")
    status_parser.add_argument("page", help="Page id or name")
    status_parser.add_argument("code", help="Test case code, e.g. TC-SL-001")
    status_parser.add_argument("status", choices=["pending", "failed", "passed"])
    status_parser.add_argument("--notes", help="Replace the tester notes")
    status_parser.set_defaults(func=command_status)

    stats_parser = subparsers.add_parser("stats", help="Show status counts")
    stats_parser.add_argument("page", nargs="?", help="Limit to one page (id or name)")
    stats_parser.set_defaults(func=command_stats)

    render_parser = subparsers.add_parser("render", help="Render a Markdown report for a page")
    render_parser.add_argument("page", help="Page id or name")
    render_parser.add_argument("--output", help="Write the report to this file")
    render_parser.set_defaults(func=command_render)

    export_parser = subparsers.add_parser("export", help="Write a JSON backup")
    export_parser.add_argument("path", help="Backup file to write")
    export_parser.set_defaults(func=command_export)

    restore_parser = subparsers.add_parser("restore", help="Replace the collection from a backup")
    restore_parser.add_argument("path", help="Backup file to read")
    restore_parser.set_defaults(func=command_restore)

    delete_parser = subparsers.add_parser("delete-page", help="Delete a page and its test cases")
    delete_parser.add_argument("page", help="Page id or name")
    delete_parser.set_defaults(func=command_delete_page)

    return parser_obj


def main(argv: list[str] | None = None) -> None:
    parser_obj = build_parser()
    args = parser_obj.parse_args(argv)
    if not getattr(args, "command", None):
        parser_obj.print_help()
        return
    configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
