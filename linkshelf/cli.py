#!/usr/bin/env python3
"""
linkshelf - collect, tag and retrieve web bookmarks.

Command-line interface over a JSON bookmark library.
"""
import sys
import json
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from linkshelf.canonical import validate_url
from linkshelf.config import get_config, init_config
from linkshelf.content_fetcher import MetadataResolver
from linkshelf.dedup import get_duplicate_stats
from linkshelf.exceptions import DuplicateBookmarkError, LinkshelfError
from linkshelf.health import check_bookmarks
from linkshelf.importers import export_json, load_json
from linkshelf.models import Bookmark, CheckStatus
from linkshelf.store import BookmarkStore

logger = logging.getLogger(__name__)

console = Console()


def open_store() -> BookmarkStore:
    store = BookmarkStore(get_config().get_library_path())
    store.load()
    return store


def bookmark_to_json(bookmark: Bookmark) -> dict:
    data = bookmark.to_dict()
    data["image"] = bookmark.image or get_config().placeholder_image
    return data


def output_bookmarks(bookmarks: List[Bookmark], format: str = "table"):
    """Output bookmarks in the specified format."""
    if format == "json":
        print(json.dumps([bookmark_to_json(b) for b in bookmarks], indent=2, ensure_ascii=False))
    elif format == "urls":
        for b in bookmarks:
            print(b.url)
    else:
        table = Table(title="Bookmarks")
        table.add_column("ID", style="cyan")
        table.add_column("Site", style="magenta")
        table.add_column("Title", style="green")
        table.add_column("URL", style="blue")
        table.add_column("Tags", style="yellow")
        table.add_column("★", style="red")

        for b in bookmarks:
            table.add_row(
                b.id,
                b.domain,
                b.title[:50],
                b.url[:50],
                ", ".join(b.tags)[:30],
                "★" if b.favorite else "",
            )

        console.print(table)


def cmd_add(args):
    """Add a new bookmark."""
    store = open_store()
    resolver = None if args.no_fetch else MetadataResolver()

    try:
        bookmark = store.add(args.url, tags=args.tags, resolver=resolver,
                             allow_duplicate=args.allow_duplicate)
    except DuplicateBookmarkError as e:
        console.print(f"[yellow]Already saved as {e.existing.id}: {e.existing.url}[/yellow]")
        sys.exit(1)

    store.save()
    if args.quiet:
        print(bookmark.id)
    else:
        console.print(f"[green]Added bookmark {bookmark.id}[/green] {bookmark.title}")


def cmd_list(args):
    """List bookmarks."""
    store = open_store()
    bookmarks = store.filter_by_tag(args.tag)
    if not args.include_archived:
        bookmarks = [b for b in bookmarks if not b.archived]
    output_bookmarks(bookmarks, args.output)


def cmd_remove(args):
    """Remove bookmarks by ID."""
    store = open_store()
    for bookmark_id in args.ids:
        store.remove(bookmark_id)
        if not args.quiet:
            console.print(f"[green]Removed bookmark {bookmark_id}[/green]")
    store.save()


def cmd_resolve(args):
    """Resolve title and image for a URL without saving it."""
    result = MetadataResolver().resolve(args.url)
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


def cmd_validate(args):
    """Validate a URL and print its normalized form."""
    result = validate_url(args.url)
    if result.error:
        console.print(f"[red]{result.error}[/red]")
        sys.exit(1)
    print(result.normalized)


def cmd_dedup(args):
    """Show duplicate statistics or merge duplicates."""
    store = open_store()

    if args.dry_run:
        stats = get_duplicate_stats(store.snapshot())
        console.print(f"Bookmarks: {stats['total_bookmarks']}")
        console.print(f"Duplicate groups: {stats['duplicate_groups']}")
        console.print(f"Would remove: {stats['bookmarks_to_remove']}")
        for key, count in stats["most_duplicated"]:
            console.print(f"  {count} × {key}")
        return

    removed = store.merge_duplicates()
    store.save()
    if args.quiet:
        print(removed)
    else:
        console.print(f"[green]Merged duplicates: {removed} bookmarks removed, {len(store)} remain[/green]")


def cmd_import(args):
    """Import bookmarks from a JSON file."""
    source = load_json(args.file)
    store = open_store()
    result = store.import_records(b.to_dict() for b in source.bookmarks)
    store.save()
    skipped = source.skipped + result.skipped
    if args.quiet:
        print(result.imported)
    else:
        console.print(f"[green]Imported {result.imported} bookmarks[/green]"
                      + (f" [yellow]({skipped} skipped)[/yellow]" if skipped else ""))


def cmd_export(args):
    """Export bookmarks to a JSON file."""
    store = open_store()
    export_json(store.snapshot(), args.file)
    if not args.quiet:
        console.print(f"[green]Exported {len(store)} bookmarks to {args.file}[/green]")


def cmd_check(args):
    """Check bookmark reachability and record the results."""
    store = open_store()
    config = get_config()
    checked = check_bookmarks(store.snapshot(), max_workers=config.max_workers)
    store.replace_all(checked)
    store.save()

    broken = [b for b in checked if b.check_status is CheckStatus.BROKEN]
    if args.quiet:
        print(len(broken))
    else:
        console.print(f"Checked {len(checked)} bookmarks, [red]{len(broken)} broken[/red]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="linkshelf: collect, tag and retrieve web bookmarks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  linkshelf add example.com/article --tags "reading, web"
  linkshelf list --tag reading
  linkshelf resolve https://example.com/post
  linkshelf dedup --dry-run
  linkshelf import old-bookmarks.json

Configuration:
  Config file: ~/.config/linkshelf/config.toml or ./linkshelf.toml
  Environment: LINKSHELF_LIBRARY, LINKSHELF_TIMEOUT, LINKSHELF_LOG_LEVEL
        """
    )

    parser.add_argument("--library", help="Library file (default: linkshelf.json)")
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("-o", "--output", choices=["table", "json", "urls"], help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Add a bookmark")
    add.add_argument("url", help="URL to save")
    add.add_argument("--tags", help="Comma or space separated tags")
    add.add_argument("--no-fetch", action="store_true", help="Skip title/image resolution")
    add.add_argument("--allow-duplicate", action="store_true", help="Save even if already bookmarked")
    add.set_defaults(func=cmd_add)

    lst = subparsers.add_parser("list", help="List bookmarks")
    lst.add_argument("--tag", help="Only bookmarks with this tag")
    lst.add_argument("--include-archived", action="store_true", help="Include archived bookmarks")
    lst.set_defaults(func=cmd_list)

    remove = subparsers.add_parser("remove", help="Remove bookmarks")
    remove.add_argument("ids", nargs="+", help="Bookmark IDs")
    remove.set_defaults(func=cmd_remove)

    resolve = subparsers.add_parser("resolve", help="Resolve title and image for a URL")
    resolve.add_argument("url")
    resolve.set_defaults(func=cmd_resolve)

    validate = subparsers.add_parser("validate", help="Validate and normalize a URL")
    validate.add_argument("url")
    validate.set_defaults(func=cmd_validate)

    dedup = subparsers.add_parser("dedup", help="Merge duplicate bookmarks")
    dedup.add_argument("--dry-run", action="store_true", help="Only show duplicate statistics")
    dedup.set_defaults(func=cmd_dedup)

    imp = subparsers.add_parser("import", help="Import bookmarks from JSON")
    imp.add_argument("file", type=Path)
    imp.set_defaults(func=cmd_import)

    exp = subparsers.add_parser("export", help="Export bookmarks to JSON")
    exp.add_argument("file", type=Path)
    exp.set_defaults(func=cmd_export)

    check = subparsers.add_parser("check", help="Check bookmark reachability")
    check.set_defaults(func=cmd_check)

    return parser


def log_level(name) -> Optional[int]:
    """Map a level name such as ``info`` to its logging constant, or None if unknown."""
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else None


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config:
        get_config(reload=True, config_file=Path(args.config))
    config = init_config(library=args.library, output_format=args.output)

    if not args.output:
        args.output = config.output_format

    level = log_level(config.log_level)
    logging.basicConfig(level=logging.WARNING if level is None else level, format="%(levelname)s: %(message)s")
    if level is None:
        logger.warning(f"Unknown log level {config.log_level!r}, using WARNING")

    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except LinkshelfError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
