"""
Small helpers shared across meowpad: tag slugs, URL checks and timestamps.
"""
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from meowpad.errors import ValidationError

WEB_SCHEMES = ('http', 'https')
TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


def slugify(tag: str) -> str:
    """
    Canonicalize a tag name into its slug.

    Alphanumerics are lowercased and kept, colons separate namespaces, and
    any other run of characters becomes a single hyphen. Hyphens are trimmed
    from both ends of every namespace segment.

    Examples:
        >>> slugify("Ursula K. Le Guin")
        'ursula-k-le-guin'
        >>> slugify("  ns1  : ns2 ?: actual term")
        'ns1:ns2:actual-term'

    Raises:
        ValidationError: if the tag is empty, has no alphanumerics, or has an
            empty namespace segment (":foo", "foo:", "foo::bar").
    """
    chars = []
    is_sep = True
    for c in tag.lower().strip():
        if c.isalnum():
            is_sep = False
            chars.append(c)
        elif c == ':':
            chars.append(':')
        elif not is_sep:
            chars.append('-')
            is_sep = True

    segments = []
    for piece in ''.join(chars).split(':'):
        segment = piece.strip('-')
        if not segment:
            raise ValidationError(f"Invalid tag `{tag}`", operation="slugify", subject=tag)
        segments.append(segment)
    return ':'.join(segments)


def validate_url(url: str) -> str:
    """
    Check that a URL is an absolute http(s) URL.

    Returns:
        The URL with surrounding whitespace removed.

    Raises:
        ValidationError: for unparseable URLs or non-web schemes.
    """
    candidate = url.strip()
    try:
        parsed = urlparse(candidate)
    except ValueError:
        raise ValidationError(f"{url} is an invalid URL", operation="validate_url", subject=url)
    if parsed.scheme not in WEB_SCHEMES:
        scheme = parsed.scheme or "(none)"
        raise ValidationError(f"Non-web URL scheme {scheme}", operation="validate_url", subject=url)
    if not parsed.netloc:
        raise ValidationError(f"{url} is an invalid URL", operation="validate_url", subject=url)
    return candidate


def now() -> datetime:
    """Current UTC instant, truncated to the second."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(instant: datetime) -> str:
    """Serialize an instant as a second-resolution ISO-8601 UTC string."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    instant = datetime.fromisoformat(text.replace(' ', 'T', 1))
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def truncate(text: Optional[str], length: int) -> str:
    """Shorten text for table cells."""
    if not text:
        return ''
    if len(text) <= length:
        return text
    return text[:length - 1] + '…'
