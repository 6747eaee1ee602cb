import os
import tempfile
from unittest.mock import Mock

import pytest

from meowpad.archive import Archive
from meowpad.db import Database
from meowpad.extractor import PageInfo


@pytest.fixture
def db():
    """A fresh archive in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        database = Database(path=os.path.join(tmpdir, "meowpad.db"))
        yield database
        database.dispose()


@pytest.fixture
def page_info():
    return PageInfo(
        title="Sourdough Basics",
        excerpt="How to keep a starter alive",
        plain_text="Feed the starter flour and water every day.\nKeep it warm.",
    )


@pytest.fixture
def extractor(page_info):
    """An extractor that never touches the network."""
    mock = Mock()
    mock.extract.return_value = page_info
    return mock


@pytest.fixture
def editor():
    return Mock(return_value="")


@pytest.fixture
def archive(db, extractor, editor):
    return Archive(db, extractor=extractor, editor=editor)


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch, tmp_path):
    """Keep tests away from the real user config and data directories."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("XDG_DATA_HOME", raising=False)
    for key in list(os.environ):
        if key.startswith("MEOWPAD_"):
            monkeypatch.delenv(key, raising=False)
    yield home
