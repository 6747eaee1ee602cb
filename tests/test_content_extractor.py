"""
Tests for page content extraction.
"""
import pytest
import requests
from unittest.mock import Mock, patch

from meowpad.errors import ExternalFetchError
from meowpad.extractor import ContentExtractor, PageInfo


ARTICLE_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
    <title>Test Page Title</title>
    <meta name="description" content="This is a test page description">
    <meta property="og:title" content="OpenGraph Title">
    <script>var tracking = "do not index";</script>
    <style>body { color: red; }</style>
</head>
<body>
    <nav>Home | About | Contact</nav>
    <header>Site banner</header>
    <article>
        <h1>Main Heading</h1>
        <p>First   paragraph of the article.</p>

        <p>Second paragraph.</p>
    </article>
    <aside>Related posts</aside>
    <footer>Copyright</footer>
</body>
</html>
"""


class TestParse:
    """Test HTML distillation without the network."""

    @pytest.fixture
    def extractor(self):
        return ContentExtractor(timeout=5)

    def test_title(self, extractor):
        info = extractor.parse(ARTICLE_HTML)
        assert info.title == "Test Page Title"

    def test_og_title_fallback(self, extractor):
        html = '<html><head><meta property="og:title" content="OG Only"></head><body>x</body></html>'
        assert extractor.parse(html).title == "OG Only"

    def test_no_title(self, extractor):
        assert extractor.parse("<html><body><p>text</p></body></html>").title is None

    def test_excerpt_from_meta_description(self, extractor):
        assert extractor.parse(ARTICLE_HTML).excerpt == "This is a test page description"

    def test_excerpt_from_first_paragraph(self, extractor):
        html = "<html><body><main><p>Opening   line.</p><p>More.</p></main></body></html>"
        assert extractor.parse(html).excerpt == "Opening line."

    def test_long_excerpt_truncated(self, extractor):
        html = f'<html><head><meta name="description" content="{"word " * 200}"></head></html>'
        excerpt = extractor.parse(html).excerpt
        assert len(excerpt) <= 300
        assert excerpt.endswith("…")

    def test_plain_text_from_article(self, extractor):
        text = extractor.parse(ARTICLE_HTML).plain_text
        assert "Main Heading" in text
        assert "First paragraph of the article." in text
        assert "Second paragraph." in text

    def test_noise_removed(self, extractor):
        text = extractor.parse(ARTICLE_HTML).plain_text
        for noise in ["do not index", "color: red", "Home | About", "Site banner",
                      "Related posts", "Copyright"]:
            assert noise not in text

    def test_blank_lines_collapsed(self, extractor):
        text = extractor.parse(ARTICLE_HTML).plain_text
        assert "\n\n" not in text
        assert text == text.strip()

    def test_body_without_article(self, extractor):
        html = "<html><body><div>Plain body text</div></body></html>"
        assert extractor.parse(html).plain_text == "Plain body text"


class TestFetch:
    """Test downloading pages."""

    def test_user_agent(self):
        extractor = ContentExtractor(user_agent="meowpad/test")
        assert extractor.session.headers["User-Agent"] == "meowpad/test"

    def test_extract_fetches_and_parses(self):
        extractor = ContentExtractor(timeout=3)
        response = Mock(text=ARTICLE_HTML, content=ARTICLE_HTML.encode())
        with patch.object(extractor.session, "get", return_value=response) as get:
            info = extractor.extract("https://example.com/post")

        get.assert_called_once_with("https://example.com/post", timeout=3, allow_redirects=True)
        assert isinstance(info, PageInfo)
        assert info.title == "Test Page Title"

    def test_connection_error(self):
        extractor = ContentExtractor()
        with patch.object(extractor.session, "get",
                          side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ExternalFetchError) as excinfo:
                extractor.extract("https://down.example")
        assert excinfo.value.subject == "https://down.example"
        assert "https://down.example" in str(excinfo.value)

    def test_timeout(self):
        extractor = ContentExtractor()
        with patch.object(extractor.session, "get", side_effect=requests.Timeout("slow")):
            with pytest.raises(ExternalFetchError):
                extractor.extract("https://slow.example")

    def test_http_error_status(self):
        extractor = ContentExtractor()
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        with patch.object(extractor.session, "get", return_value=response):
            with pytest.raises(ExternalFetchError) as excinfo:
                extractor.extract("https://missing.example")
        assert "404" in str(excinfo.value)
