"""
Page content extraction for meowpad.

Fetches a URL and distills it into a title, a short excerpt and the plain
text of the main content. The text is what gets indexed for search.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests
from bs4 import BeautifulSoup

from meowpad.errors import ExternalFetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5
NOISE_TAGS = ['script', 'style', 'noscript', 'template', 'nav', 'header', 'footer',
              'aside', 'form', 'iframe', 'svg']
MAX_EXCERPT_LENGTH = 300


@dataclass
class PageInfo:
    """What the archive keeps from a fetched page."""
    title: Optional[str]
    excerpt: Optional[str]
    plain_text: str


class ContentExtractor:
    """Readability-style extractor built on requests and BeautifulSoup."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, user_agent: Optional[str] = None):
        self.timeout = timeout
        self.session = requests.Session()
        if user_agent:
            self.session.headers.update({'User-Agent': user_agent})

    def fetch(self, url: str) -> str:
        """
        Download the HTML for a URL.

        Raises:
            ExternalFetchError: on connection errors, timeouts and non-2xx status
        """
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ExternalFetchError(f"Unable to fetch <{url}>: {e}",
                                     operation="fetch", subject=url) from e
        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return response.text

    def extract(self, url: str) -> PageInfo:
        """Fetch a page and distill it."""
        return self.parse(self.fetch(url), url)

    def parse(self, html: str, url: str = "") -> PageInfo:
        """
        Distill already-fetched HTML.

        Raises:
            ExternalFetchError: if the document cannot be parsed
        """
        try:
            soup = BeautifulSoup(html, 'html.parser')
        except Exception as e:
            raise ExternalFetchError(f"Unable to parse <{url}>: {e}",
                                     operation="extract", subject=url) from e

        meta = {}
        for tag in soup.find_all('meta'):
            name = tag.get('name') or tag.get('property')
            content = tag.get('content')
            if name and content:
                meta[name.lower()] = content.strip()

        title = None
        if soup.title and soup.title.get_text(strip=True):
            title = soup.title.get_text(strip=True)
        elif meta.get('og:title'):
            title = meta['og:title']

        for noise in soup(NOISE_TAGS):
            noise.decompose()

        main = soup.find('article') or soup.find('main') or soup.body or soup
        plain_text = _normalize_whitespace(main.get_text(separator='\n'))

        excerpt = meta.get('description') or meta.get('og:description') or meta.get('twitter:description')
        if not excerpt:
            paragraph = main.find('p')
            if paragraph:
                excerpt = _normalize_whitespace(paragraph.get_text(' ')) or None
        if excerpt and len(excerpt) > MAX_EXCERPT_LENGTH:
            excerpt = excerpt[:MAX_EXCERPT_LENGTH - 1].rstrip() + '…'

        return PageInfo(title=title, excerpt=excerpt, plain_text=plain_text)


def _normalize_whitespace(text: str) -> str:
    """Collapse runs of spaces and blank lines."""
    lines = (re.sub(r'[ \t\r\f\v]+', ' ', line).strip() for line in text.splitlines())
    return '\n'.join(line for line in lines if line)
