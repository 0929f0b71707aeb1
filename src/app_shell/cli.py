import argparse
import json
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from src.app_shell.context import ServiceContext
from src.components.entries import (
    EntryError,
    GetEntryInput,
    SaveEntryInput,
    run_get,
    run_save,
)
from src.core.entities import Entry, EntryType, Section
from src.rules.loader import DEFAULT_RULES_PATH, load_rules

logger = logging.getLogger("cli")


def get_context(args: argparse.Namespace) -> ServiceContext:
    rules_path = Path(args.rules)
    if not rules_path.exists():
        logger.error("Rules file %s not found.", rules_path)
        sys.exit(1)

    rules = load_rules(rules_path)
    logging.basicConfig(level=rules.logging.level)

    db_path = args.db or rules.database.path
    data_dir = os.environ.get("ENTRIES_DATA_DIR")
    if data_dir and not args.db:
        db_path = f"{data_dir}/entries.db"
    return ServiceContext.create(db_path, rules)


def _read_json(path: str) -> dict:
    with open(path) as f:
        return json.load(f)


def _print_entry(entry: Entry) -> None:
    print(json.dumps(entry.model_dump(mode="json", exclude={"errors"}), indent=2))


def handle_migrate(ctx: ServiceContext, args: argparse.Namespace) -> int:
    applied = ctx.migrate()
    print(f"Applied {len(applied)} migration(s).")
    return 0


def handle_section(ctx: ServiceContext, args: argparse.Namespace) -> int:
    """Create or update a section (and its entry types) from a JSON file.

    A section whose handle already exists is updated in place, as are its
    entry types matched by handle.
    """
    data = _read_json(args.file)
    entry_types = data.pop("entry_types", [])
    section = Section.model_validate(data)
    existing = ctx.sections.get_section_by_handle(section.handle)
    if existing is not None:
        section.id = existing.id
    section = ctx.sections.save_section(section)
    assert section.id is not None

    known = {t.handle: t.id for t in ctx.entry_types.list_for_section(section.id)}
    for position, type_data in enumerate(entry_types):
        entry_type = EntryType.model_validate({**type_data, "section_id": section.id})
        entry_type.id = known.get(entry_type.handle)
        ctx.entry_types.save_entry_type(entry_type, position=position)

    print(f"Section '{section.handle}' saved with id {section.id}.")
    return 0


def handle_show(ctx: ServiceContext, args: argparse.Namespace) -> int:
    result = run_get(GetEntryInput(entry_id=args.entry_id, locale=args.locale), reader=ctx.entry_reader)
    if not result.success or result.entry is None:
        logger.error("Entry %s not found.", args.entry_id)
        return 1
    _print_entry(result.entry)
    return 0


def handle_save(ctx: ServiceContext, args: argparse.Namespace) -> int:
    entry = Entry.model_validate(_read_json(args.file))
    preserve = False if args.regenerate_slug else None

    result = run_save(
        SaveEntryInput(entry=entry, preserve_existing_slug=preserve),
        service=ctx.entry_service,
    )
    if not result.success:
        for error in result.errors:
            print(f"  {error.field or '-'}: {error.message}", file=sys.stderr)
        return 2

    _print_entry(result.entry)
    return 0


def handle_tree(ctx: ServiceContext, args: argparse.Namespace) -> int:
    nodes = ctx.structure(args.section_id)
    if not nodes:
        logger.error("Section %s has no structure.", args.section_id)
        return 1

    for node in nodes:
        if node.is_root:
            print(f"[root] ({node.lft}, {node.rgt})")
            continue
        entry = ctx.entry_reader.get_by_id(node.entry_id) if node.entry_id else None
        label = entry.slug if entry and entry.slug else f"#{node.entry_id}"
        print(f"{'  ' * node.depth}{label} ({node.lft}, {node.rgt})")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Structured Entries CLI")
    parser.add_argument("--rules", default=str(DEFAULT_RULES_PATH), help="Path to rules.yaml")
    parser.add_argument("--db", help="SQLite database path (overrides rules)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending migrations")

    # section
    section_parser = subparsers.add_parser("section", help="Create a section from JSON")
    section_parser.add_argument("file", help="Section JSON (may include entry_types)")

    # show
    show_parser = subparsers.add_parser("show", help="Print an entry")
    show_parser.add_argument("entry_id", type=int)
    show_parser.add_argument("--locale")

    # save
    save_parser = subparsers.add_parser("save", help="Save an entry from JSON")
    save_parser.add_argument("file", help="Entry JSON; omit id to create")
    save_parser.add_argument(
        "--regenerate-slug",
        action="store_true",
        help="Rebuild the slug from the title when none is given",
    )

    # tree
    tree_parser = subparsers.add_parser("tree", help="Print a structure section's tree")
    tree_parser.add_argument("section_id", type=int)

    args = parser.parse_args(argv)
    ctx = get_context(args)

    handlers = {
        "migrate": handle_migrate,
        "section": handle_section,
        "show": handle_show,
        "save": handle_save,
        "tree": handle_tree,
    }
    try:
        return handlers[args.command](ctx, args)
    except (EntryError, ValidationError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
