"""
Tests for meowpad/render.py
"""
import json
from io import StringIO

import pytest
from rich.console import Console

from meowpad.archive import LinkDetail
from meowpad.render import format_removed, output_detail, output_links, output_tags


@pytest.fixture
def console():
    return Console(file=StringIO(), width=120, color_system=None)


@pytest.fixture
def saved(archive):
    archive.add_link("https://a.example", tags=["[bold]"], note="see [red]this[/red]",
                     related_link="https://b.example", relation="follow-up")
    return archive.show("https://a.example")


class TestFormatRemoved:

    def test_nothing(self):
        assert format_removed("x", []) is None

    def test_link(self):
        assert format_removed("https://a.example", ["link"]) == "Removed link for <https://a.example>"

    def test_link_and_note(self):
        assert format_removed("t", ["link", "note"]) == "Removed link and note for <t>"


class TestOutputLinks:

    def test_json(self, archive, saved, console):
        output_links(archive.list_links(), console, "json")
        data = json.loads(console.file.getvalue())
        assert data[0]["url"] == "https://a.example"
        assert data[0]["title"] == "Sourdough Basics"
        assert data[0]["created_at"].endswith("Z")

    def test_urls(self, archive, saved, console):
        output_links(archive.list_links(), console, "urls")
        assert console.file.getvalue() == "https://a.example\n"

    def test_table(self, archive, saved, console):
        output_links(archive.list_links(), console)
        out = console.file.getvalue()
        assert "URL" in out
        assert "Sourdough Basics" in out


class TestOutputDetail:

    def test_markup_is_escaped(self, saved, console):
        output_detail(saved, console)
        out = console.file.getvalue()
        assert "[bold]" in out
        assert "see [red]this[/red]" in out
        assert "https://b.example (follow-up)" in out

    def test_without_note_or_relations(self, archive, console):
        archive.add_link("https://plain.example")
        detail = archive.show("https://plain.example")
        assert isinstance(detail, LinkDetail)
        output_detail(detail, console)
        out = console.file.getvalue()
        assert "See Also" not in out
        assert "Note" not in out

    def test_json(self, saved, console):
        output_detail(saved, console, "json")
        data = json.loads(console.file.getvalue())
        assert data["tags"] == ["[bold]"]
        assert data["note"] == "see [red]this[/red]"


class TestOutputTags:

    def test_json(self, archive, console):
        archive.add_link("https://a.example", tags=["Free Jazz"])
        output_tags(archive.tags(), console, "json")
        assert json.loads(console.file.getvalue()) == [{"name": "Free Jazz", "slug": "free-jazz"}]
