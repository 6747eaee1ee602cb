"""Terminal output for meowpad commands."""
import json
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from meowpad.archive import LinkDetail
from meowpad.models import Link, Tag
from meowpad.utils import format_timestamp

OUTPUT_FORMATS = ["table", "json", "urls"]


def link_to_dict(link: Link) -> dict:
    return {
        "id": str(link.id),
        "url": link.url,
        "title": link.title,
        "description": link.description,
        "created_at": format_timestamp(link.created_at),
        "modified_at": format_timestamp(link.modified_at),
    }


def output_links(links: List[Link], console: Console, format: str = "table"):
    """Output links in the specified format."""
    if format == "json":
        console.print_json(json.dumps([link_to_dict(link) for link in links]))
    elif format == "urls":
        for link in links:
            console.print(link.url, markup=False, highlight=False, soft_wrap=True)
    else:
        table = Table(box=None, header_style="bold")
        table.add_column("URL", style="blue", overflow="fold")
        table.add_column("Title", style="green")
        table.add_column("Created", style="cyan", no_wrap=True)
        for link in links:
            table.add_row(escape(link.url), escape(link.title or ""), link.created_at.strftime("%Y-%m-%d"))
        console.print(table)


def _see_also(related) -> str:
    lines = []
    for url, relationship in related:
        lines.append(f"{url} ({relationship})" if relationship else url)
    return "\n".join(lines)


def output_detail(detail: LinkDetail, console: Console, format: str = "table"):
    """Detail view of one link."""
    link = detail.link
    if format == "json":
        data = link_to_dict(link)
        data["tags"] = [tag.name for tag in detail.tags]
        data["note"] = detail.note.content if detail.note else None
        data["related"] = [{"url": url, "relationship": relationship}
                           for url, relationship in detail.related]
        console.print_json(json.dumps(data))
        return
    if format == "urls":
        console.print(link.url, markup=False, highlight=False, soft_wrap=True)
        return

    details = Table(show_header=False, box=None)
    details.add_column("Field", style="cyan bold")
    details.add_column("Value", style="white", overflow="fold")
    details.add_row("Title", escape(link.title or ""))
    details.add_row("URL", escape(link.url))
    details.add_row("Description", escape(link.description or ""))
    details.add_row("Added", link.created_at.strftime("%Y-%m-%d"))
    if detail.tags:
        details.add_row("Tags", escape(", ".join(tag.name for tag in detail.tags)))
    if detail.related:
        details.add_row("See Also", escape(_see_also(detail.related)))
    if detail.note is not None:
        details.add_row("Note", escape(detail.note.content.strip()))

    console.print(Panel(details, title=escape(link.title or link.url), border_style="blue"))


def output_tags(tags: List[Tag], console: Console, format: str = "table"):
    if format == "json":
        console.print_json(json.dumps([{"name": tag.name, "slug": tag.slug} for tag in tags]))
        return
    table = Table(box=None, header_style="bold")
    table.add_column("Slug", style="yellow")
    table.add_column("Name")
    for tag in tags:
        table.add_row(tag.slug, escape(tag.name))
    console.print(table)


def format_removed(item: str, which: List[str]) -> Optional[str]:
    """Summary line for ``remove``; None when nothing matched."""
    if not which:
        return None
    return f"Removed {' and '.join(which)} for <{item}>"
