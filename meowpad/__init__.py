"""
meowpad - a personal bookmark and note archive

Give it a URL and it fetches and distills the page, storing the text
alongside your notes and freeform tags in a single SQLite file. Links can
point at other links; a URL that is only ever referenced stays a quiet
"secondary" link until you bookmark it yourself.

Example Usage:
    >>> from meowpad import Archive, Database
    >>> archive = Archive(Database(path="~/meowpad.db"))
    >>> archive.add_link("https://example.com", tags=["demo"], fetch=False)
    >>> archive.list_links(tags=["demo"])
"""

__version__ = "0.1.0"

# Core database API
from meowpad.db import Database

# Configuration
from meowpad.config import MeowpadConfig, get_config, init_config

# Models
from meowpad.models import Link, Note, Tag

# Command layer
from meowpad.archive import Archive

# Errors
from meowpad.errors import (
    MeowpadError,
    ValidationError,
    Conflict,
    NotFound,
    ExternalFetchError,
    StorageError,
)

# Utilities
from meowpad.ids import new_id
from meowpad.utils import slugify, validate_url

__all__ = [
    # Database
    "Database",
    # Config
    "MeowpadConfig",
    "get_config",
    "init_config",
    # Models
    "Link",
    "Note",
    "Tag",
    # Commands
    "Archive",
    # Errors
    "MeowpadError",
    "ValidationError",
    "Conflict",
    "NotFound",
    "ExternalFetchError",
    "StorageError",
    # Utilities
    "new_id",
    "slugify",
    "validate_url",
]
