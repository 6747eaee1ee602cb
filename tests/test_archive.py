"""
Tests for meowpad/archive.py: the add, note, remove, list, search and show
commands, with the network and editor replaced by mocks.
"""
import pytest

from meowpad.errors import Conflict, ExternalFetchError, NotFound, ValidationError
from meowpad.extractor import PageInfo
from meowpad.query import Lookup


class TestAddLink:
    """Test bookmarking URLs."""

    def test_add_uses_page_info(self, archive, extractor):
        result = archive.add_link("https://bread.example", tags=["Baking"])

        extractor.extract.assert_called_once_with("https://bread.example")
        detail = archive.show("https://bread.example")
        assert detail.link.id == result.link_id
        assert detail.link.title == "Sourdough Basics"
        assert detail.link.description == "How to keep a starter alive"
        assert detail.link.content.startswith("Feed the starter")
        assert [tag.slug for tag in detail.tags] == ["baking"]

    def test_explicit_title_and_description_win(self, archive):
        archive.add_link("https://bread.example", title="Mine", description="My words")
        link = archive.show("https://bread.example").link
        assert link.title == "Mine"
        assert link.description == "My words"

    def test_empty_page_title_is_none(self, archive, extractor):
        extractor.extract.return_value = PageInfo(title="", excerpt=None, plain_text="  text  ")
        archive.add_link("https://bread.example")
        link = archive.show("https://bread.example").link
        assert link.title is None
        assert link.content == "text"

    def test_no_fetch(self, archive, extractor):
        archive.add_link("https://bread.example", title="Offline", fetch=False)
        extractor.extract.assert_not_called()
        link = archive.show("https://bread.example").link
        assert link.title == "Offline"
        assert link.content is None

    def test_archive_level_fetch_setting(self, db, extractor, editor):
        from meowpad.archive import Archive

        offline = Archive(db, extractor=extractor, editor=editor, fetch=False)
        offline.add_link("https://bread.example")
        extractor.extract.assert_not_called()

    def test_invalid_url_rejected_before_fetch(self, archive, extractor):
        with pytest.raises(ValidationError):
            archive.add_link("ftp://files.example")
        extractor.extract.assert_not_called()

    def test_invalid_tag_rejected_before_fetch(self, archive, extractor):
        with pytest.raises(ValidationError):
            archive.add_link("https://bread.example", tags=["ok", "::"])
        extractor.extract.assert_not_called()
        assert archive.list_links() == []

    def test_fetch_failure_writes_nothing(self, archive, extractor):
        extractor.extract.side_effect = ExternalFetchError("Unable to fetch", operation="fetch")
        with pytest.raises(ExternalFetchError):
            archive.add_link("https://bread.example", tags=["baking"])
        assert archive.list_links() == []
        assert archive.tags() == []

    def test_duplicate_conflicts(self, archive):
        archive.add_link("https://bread.example")
        with pytest.raises(Conflict) as excinfo:
            archive.add_link("https://bread.example")
        assert "https://bread.example" in str(excinfo.value)

    def test_update_refreshes(self, archive, extractor):
        first = archive.add_link("https://bread.example")
        extractor.extract.return_value = PageInfo(title="Rye", excerpt="Dense", plain_text="caraway")
        second = archive.add_link("https://bread.example", refresh=True)

        assert second.link_id == first.link_id
        link = archive.show("https://bread.example").link
        assert link.title == "Rye"
        assert link.content == "caraway"
        assert archive.search("starter") == []

    def test_update_without_fetch_keeps_bookmark(self, archive, extractor):
        first = archive.add_link("https://bread.example", tags=["baking"])
        second = archive.add_link("https://bread.example", fetch=False, refresh=True)

        assert second.link_id == first.link_id
        assert extractor.extract.call_count == 1
        link = archive.show("https://bread.example").link
        assert link.title == "Sourdough Basics"
        assert link.description == "How to keep a starter alive"
        assert link.content.startswith("Feed the starter")
        assert [hit.url for hit in archive.search("starter")] == ["https://bread.example"]

    def test_note_message(self, archive):
        result = archive.add_link("https://bread.example", tags=["baking"], note="try rye next")
        detail = archive.show("https://bread.example")
        assert detail.note.id == result.note_id
        assert detail.note.title == "https://bread.example"
        assert detail.note.content == "try rye next"

    def test_note_tagged_like_link(self, archive, db):
        result = archive.add_link("https://bread.example", tags=["baking"], note="hi")
        with db.transaction() as stores:
            assert [t.slug for t in stores.associations.tags_for(result.note_id)] == ["baking"]

    def test_note_from_editor(self, archive, editor):
        editor.return_value = "written in the editor"
        archive.add_link("https://bread.example", edit_note=True)
        editor.assert_called_once_with("")
        assert archive.show("https://bread.example").note.content == "written in the editor"

    def test_message_skips_editor(self, archive, editor):
        archive.add_link("https://bread.example", note="typed", edit_note=True)
        editor.assert_not_called()

    def test_related_link_created_as_secondary(self, archive, db):
        result = archive.add_link("https://a.example", related_link="https://b.example",
                                  relation="inspired by")
        detail = archive.show("https://a.example")
        assert detail.related == [("https://b.example", "inspired by")]
        assert [link.url for link in archive.list_links()] == ["https://a.example"]
        with db.transaction() as stores:
            secondary = stores.links.get(Lookup(id=result.related_id))
        assert secondary.is_primary is False

    def test_promotion_through_add(self, archive, extractor):
        archive.add_link("https://a.example", related_link="https://b.example")
        with pytest.raises(NotFound):
            archive.show("https://b.example")

        extractor.extract.return_value = PageInfo(title="B", excerpt=None, plain_text="bee")
        result = archive.add_link("https://b.example")

        assert result.transition.promoted
        detail = archive.show("https://b.example")
        assert detail.link.is_primary is True
        assert detail.link.content == "bee"
        assert archive.show("https://a.example").related == [("https://b.example", None)]

    def test_related_link_validated(self, archive):
        with pytest.raises(ValidationError):
            archive.add_link("https://a.example", related_link="not a url")
        assert archive.list_links() == []


class TestAddNote:
    """Test standalone notes."""

    def test_message_creates_note(self, archive, db):
        note = archive.add_note(title="groceries", message="cat food")
        assert note.title == "groceries"
        assert note.content == "cat food"

    def test_message_appends(self, archive):
        archive.add_note(title="groceries", message="cat food")
        note = archive.add_note(title="groceries", message="litter")
        assert note.content == "cat food\nlitter"

    def test_default_title_is_timestamp(self, archive):
        note = archive.add_note(message="thought")
        assert note.title.endswith("Z")
        assert "T" in note.title

    def test_editor_sees_existing_content(self, archive, editor):
        archive.add_note(title="journal", message="day one")
        editor.return_value = "day one\nday two"
        note = archive.add_note(title="journal")
        editor.assert_called_once_with("day one")
        assert note.content == "day one\nday two"

    def test_empty_editor_result_adds_nothing(self, archive, editor, db):
        editor.return_value = "  \n"
        assert archive.add_note(title="empty") is None
        with db.transaction() as stores:
            assert stores.notes.get_by_title("empty") is None

    def test_empty_message_adds_nothing(self, archive):
        assert archive.add_note(title="empty", message="") is None

    def test_tags(self, archive, db):
        note = archive.add_note(title="tagged", tags=["Jazz", "music:bebop"], message="x")
        with db.transaction() as stores:
            slugs = [t.slug for t in stores.associations.tags_for(note.id)]
        assert slugs == ["jazz", "music:bebop"]

    def test_tagged_note_on_link_lists_link(self, archive):
        archive.add_link("https://a.example", note="liner notes")
        archive.add_link("https://b.example")
        archive.add_note(title="https://a.example", tags=["jazz"], message="more")
        assert [link.url for link in archive.list_links(["jazz"])] == ["https://a.example"]


class TestRemove:
    """Test removing bookmarks and notes."""

    def test_remove_link(self, archive):
        archive.add_link("https://a.example")
        assert archive.remove("https://a.example") == ["link"]
        assert archive.list_links() == []

    def test_deleted_link_takes_its_note(self, archive, db):
        archive.add_link("https://a.example", note="hello")
        assert archive.remove("https://a.example") == ["link"]
        with db.transaction() as stores:
            assert stores.notes.get_by_title("https://a.example") is None

    def test_demoted_link_and_note(self, archive):
        """A demoted link keeps its note until the note is removed by title."""
        archive.add_link("https://a.example", note="hello")
        archive.add_link("https://b.example", related_link="https://a.example")
        assert archive.remove("https://a.example") == ["link", "note"]

    def test_remove_note_only(self, archive):
        archive.add_note(title="groceries", message="cat food")
        assert archive.remove("groceries") == ["note"]

    def test_remove_by_id(self, archive):
        result = archive.add_link("https://a.example")
        assert archive.remove(str(result.link_id)) == ["link"]

    def test_nothing_found(self, archive):
        assert archive.remove("https://nowhere.example") == []

    def test_remove_demotes_related_target(self, archive, db):
        archive.add_link("https://a.example", tags=["jazz"])
        archive.add_link("https://b.example", related_link="https://a.example")

        assert archive.remove("https://a.example") == ["link"]

        assert [link.url for link in archive.list_links()] == ["https://b.example"]
        assert archive.show("https://b.example").related == [("https://a.example", None)]
        with db.transaction() as stores:
            demoted = stores.links.get(Lookup(url="https://a.example"))
            assert demoted.is_primary is False
            assert demoted.content is None
            assert stores.associations.tags_for(demoted.id) == []

    def test_removing_secondary_finds_nothing(self, archive):
        archive.add_link("https://a.example", related_link="https://b.example")
        assert archive.remove("https://b.example") == []


class TestQueries:
    """Test list, search, show and tags."""

    def test_list_newest_first(self, archive, db):
        from datetime import timedelta
        from meowpad.utils import now

        base = now()
        with db.transaction() as stores:
            stores.links.insert("https://old.example", timestamp=base - timedelta(days=1))
            stores.links.insert("https://new.example", timestamp=base)
        assert [link.url for link in archive.list_links()] == [
            "https://new.example", "https://old.example"]

    def test_list_by_tag_slugifies(self, archive):
        archive.add_link("https://a.example", tags=["Free Jazz"])
        archive.add_link("https://b.example", tags=["rock"])
        assert [link.url for link in archive.list_links(["free jazz!"])] == ["https://a.example"]

    def test_list_invalid_tag(self, archive):
        with pytest.raises(ValidationError):
            archive.list_links(["???"])

    def test_search(self, archive, extractor):
        archive.add_link("https://bread.example")
        extractor.extract.return_value = PageInfo(title="Cats", excerpt=None, plain_text="meow")
        archive.add_link("https://cats.example")
        assert [link.url for link in archive.search("starter")] == ["https://bread.example"]
        assert [link.url for link in archive.search("MEOW")] == ["https://cats.example"]

    def test_search_empty_term(self, archive):
        with pytest.raises(ValidationError):
            archive.search("  ")

    def test_show_missing(self, archive):
        with pytest.raises(NotFound) as excinfo:
            archive.show("https://nowhere.example")
        assert "https://nowhere.example" in str(excinfo.value)

    def test_show_by_id(self, archive):
        result = archive.add_link("https://a.example")
        assert archive.show(str(result.link_id)).link.url == "https://a.example"

    def test_tags(self, archive):
        archive.add_link("https://a.example", tags=["Zebra", "apple"])
        assert [tag.slug for tag in archive.tags()] == ["apple", "zebra"]
