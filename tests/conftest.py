import pytest

from linkshelf.config import LinkshelfConfig
from linkshelf.content_fetcher import FetchResponse
from linkshelf.models import Bookmark, CheckStatus, Priority


def make_bookmark(**overrides):
    """Build a bookmark with sensible defaults for tests."""
    data = {
        "id": "bm1",
        "url": "https://example.com/article",
        "title": "Example Article",
        "domain": "EXAMPLE",
        "timestamp": 1_700_000_000_000,
    }
    data.update(overrides)
    return Bookmark(**data)


@pytest.fixture
def sample_bookmarks():
    """Sample bookmarks with one duplicate pair."""
    return [
        make_bookmark(
            id="a1",
            url="https://docs.python.org/3/",
            title="Python Documentation",
            domain="PYTHON",
            tags=["python", "docs"],
            timestamp=1_700_000_300_000,
            favorite=True,
            rating=4,
        ),
        make_bookmark(
            id="b2",
            url="https://github.com/",
            title="GitHub",
            domain="GITHUB",
            tags=["git"],
            timestamp=1_700_000_200_000,
            priority=Priority.HIGH,
            check_status=CheckStatus.OK,
        ),
        make_bookmark(
            id="c3",
            url="https://docs.python.org/3?utm_source=newsletter#intro",
            title="Python 3 Docs",
            domain="PYTHON",
            tags=["reference"],
            timestamp=1_700_000_100_000,
            notes="Bookmarked from the newsletter",
            open_count=3,
        ),
    ]


@pytest.fixture
def config():
    """Configuration with defaults, independent of the environment."""
    return LinkshelfConfig()


class FakeTransport:
    """Transport returning canned responses keyed by URL prefix."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def __call__(self, url):
        self.calls.append(url)
        for prefix, response in self.responses.items():
            if url.startswith(prefix):
                if isinstance(response, Exception):
                    raise response
                return response
        return FetchResponse(ok=False, status=0, error="Connection error")


@pytest.fixture
def fake_transport():
    return FakeTransport()
