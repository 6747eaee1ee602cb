#!/usr/bin/env python3
"""
meowpad command line interface.

Each subcommand opens the archive named by the configuration and runs one
``Archive`` command, which is one transaction.
"""

import sys
import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.markup import escape

from meowpad import __version__
from meowpad.archive import Archive
from meowpad.config import MeowpadConfig, init_config, user_config_path
from meowpad.db import Database
from meowpad.errors import MeowpadError, NotFound
from meowpad.extractor import ContentExtractor
from meowpad.render import OUTPUT_FORMATS, format_removed, output_detail, output_links, output_tags

logger = logging.getLogger(__name__)

console = Console()


def get_archive(config: MeowpadConfig) -> Archive:
    """Open the configured archive."""
    db = Database(path=config.database, echo=config.database_echo)
    extractor = ContentExtractor(timeout=config.fetch_timeout, user_agent=config.user_agent)
    return Archive(db, extractor=extractor, fetch=config.fetch_content)


def cmd_add(args, config: MeowpadConfig):
    """Bookmark a URL."""
    archive = get_archive(config)
    fetch = False if args.no_fetch else None
    result = archive.add_link(
        args.url,
        tags=args.tag,
        title=args.title,
        description=args.description,
        note=args.message,
        edit_note=args.note,
        related_link=args.related_link,
        relation=args.relation,
        fetch=fetch,
        refresh=args.update,
    )
    if args.quiet:
        print(result.link_id)
    elif args.update:
        console.print(f"[green]Updated bookmark for <{escape(args.url)}>[/green]")
    else:
        console.print(f"[green]Added bookmark for <{escape(args.url)}>[/green]")


def cmd_list(args, config: MeowpadConfig):
    """List bookmarks."""
    links = get_archive(config).list_links(tags=args.tag)
    output_links(links, console, args.output)


def cmd_note(args, config: MeowpadConfig):
    """Write a note."""
    archive = get_archive(config)
    note = archive.add_note(title=args.title, tags=args.tag, message=args.message)
    if note is None:
        console.print("[yellow]No note to add[/yellow]")
    elif args.quiet:
        print(note.id)
    else:
        console.print(f"[green]Added note <{escape(note.title)}>[/green]")


def cmd_remove(args, config: MeowpadConfig):
    """Remove a bookmark and/or note."""
    which = get_archive(config).remove(args.item)
    message = format_removed(args.item, which)
    if message is None:
        console.print(f"[yellow]<{escape(args.item)}> not found[/yellow]")
    elif not args.quiet:
        console.print(f"[green]{escape(message)}[/green]")


def cmd_search(args, config: MeowpadConfig):
    """Search bookmark content."""
    links = get_archive(config).search(args.term)
    output_links(links, console, args.output)


def cmd_show(args, config: MeowpadConfig):
    """Show one bookmark."""
    try:
        detail = get_archive(config).show(args.term)
    except NotFound:
        console.print(f"[yellow]<{escape(args.term)}> not found[/yellow]")
        return
    output_detail(detail, console, args.output)


def cmd_tags(args, config: MeowpadConfig):
    """List tags."""
    output_tags(get_archive(config).tags(), console, args.output)


def cmd_merge(args, config: MeowpadConfig):
    """Merge another archive into this one."""
    stats = get_archive(config).merge(args.other)
    if args.output == "json":
        print(json.dumps(stats.to_dict(), indent=2))
        return
    console.print(f"[green]Merged {escape(str(args.other))}[/green]")
    for key, value in stats.to_dict().items():
        console.print(f"  {key.replace('_', ' ')}: {value}")


def cmd_stats(args, config: MeowpadConfig):
    """Show archive statistics."""
    db = Database(path=config.database, echo=config.database_echo)
    stats = db.stats()
    if args.output == "json":
        print(json.dumps(stats, indent=2))
        return
    for key, value in stats.items():
        console.print(f"[cyan]{key.replace('_', ' ')}:[/cyan] {escape(str(value))}")


def cmd_config(args, config: MeowpadConfig):
    """Manage configuration."""
    if args.action == "show":
        if args.key:
            value = getattr(config, args.key, None)
            if value is not None:
                print(value)
            else:
                console.print(f"[red]Unknown config key: {escape(args.key)}[/red]")
                sys.exit(1)
        else:
            print(json.dumps(asdict(config), indent=2))

    elif args.action == "init":
        config_path = Path(args.path).expanduser() if args.path else user_config_path()
        if config_path.exists() and not args.force:
            console.print(f"[red]Config already exists at {config_path} (use --force)[/red]")
            sys.exit(1)
        config.save(config_path)
        console.print(f"[green]Created config at {config_path}[/green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meowpad",
        description="meowpad - a personal bookmark and note archive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  meowpad add https://example.com -t web -t "reading list"
  meowpad add https://example.com/b --related-link https://example.com/a --relation "follow-up"
  meowpad list -t web
  meowpad note --title groceries -m "cat food"
  meowpad search "sourdough starter"
  meowpad show https://example.com
  meowpad rm https://example.com

Configuration:
  Config file: ~/.config/meowpad/config.toml
  Environment: MEOWPAD_DATABASE, MEOWPAD_FETCH_TIMEOUT, MEOWPAD_LOG_LEVEL
        """
    )

    # Global options
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", help="Database file")
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More logging (repeat for debug)")
    parser.add_argument("-o", "--output", choices=OUTPUT_FORMATS, default="table",
                        help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Bookmark a URL")
    add.add_argument("url", help="http or https URL")
    add.add_argument("-t", "--tag", action="append", default=[], help="Tag (repeatable)")
    add.add_argument("--title", help="Title (default: the page title)")
    add.add_argument("--description", help="Description (default: the page excerpt)")
    note_group = add.add_mutually_exclusive_group()
    note_group.add_argument("-n", "--note", action="store_true", help="Write a note in $EDITOR")
    note_group.add_argument("-m", "--message", help="Note text")
    add.add_argument("--related-link", help="URL this link relates to")
    add.add_argument("--relation", help="How the links relate")
    add.add_argument("--no-fetch", action="store_true", help="Do not fetch the page")
    add.add_argument("--update", action="store_true",
                     help="Refresh an existing bookmark instead of failing")
    add.set_defaults(func=cmd_add)

    list_parser = subparsers.add_parser("list", aliases=["ls"], help="List bookmarks")
    list_parser.add_argument("-t", "--tag", action="append", default=[],
                             help="Only links with this tag (repeatable, any matches)")
    list_parser.set_defaults(func=cmd_list)

    note = subparsers.add_parser("note", help="Write a note")
    note.add_argument("-t", "--tag", action="append", default=[], help="Tag (repeatable)")
    note.add_argument("--title", help="Note title (default: the current time)")
    note.add_argument("-m", "--message", help="Append this text instead of opening $EDITOR")
    note.set_defaults(func=cmd_note)

    remove = subparsers.add_parser("remove", aliases=["rm"], help="Remove a bookmark or note")
    remove.add_argument("item", help="URL, link id, or note title")
    remove.set_defaults(func=cmd_remove)

    search = subparsers.add_parser("search", help="Search bookmark content")
    search.add_argument("term", help="Text to search for")
    search.set_defaults(func=cmd_search)

    show = subparsers.add_parser("show", help="Show a bookmark")
    show.add_argument("term", help="URL or link id")
    show.set_defaults(func=cmd_show)

    tags = subparsers.add_parser("tags", help="List tags")
    tags.set_defaults(func=cmd_tags)

    merge = subparsers.add_parser("merge", help="Merge another archive into this one")
    merge.add_argument("other", help="Path to the other archive")
    merge.set_defaults(func=cmd_merge)

    stats = subparsers.add_parser("stats", help="Archive statistics")
    stats.set_defaults(func=cmd_stats)

    config = subparsers.add_parser("config", help="Manage configuration")
    config_sub = config.add_subparsers(dest="action", required=True)
    config_show = config_sub.add_parser("show", help="Show configuration")
    config_show.add_argument("key", nargs="?", help="Single key to show")
    config_init = config_sub.add_parser("init", help="Write a config file")
    config_init.add_argument("--path", help="Where to write it (default: user config)")
    config_init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    config.set_defaults(func=cmd_config)

    return parser


def setup_logging(level_name: str, verbose: int = 0):
    level = getattr(logging, level_name.upper(), logging.WARNING)
    if verbose == 1:
        level = min(level, logging.INFO)
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, stream=sys.stderr,
                        format="%(levelname)s %(name)s: %(message)s")


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = init_config(
            database=args.db,
            config_file=Path(args.config) if args.config else None,
        )
        setup_logging(config.log_level, args.verbose)
        args.func(args, config)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except MeowpadError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
