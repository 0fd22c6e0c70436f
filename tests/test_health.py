"""
Tests for linkshelf/health.py reachability checks.
"""
from unittest.mock import MagicMock

import pytest
import requests

from linkshelf.health import check_bookmarks, check_url
from linkshelf.models import CheckStatus


def response(status):
    mock_response = MagicMock()
    mock_response.status_code = status
    return mock_response


class TestCheckUrl:
    """Test check_url()."""

    def test_ok(self):
        session = MagicMock()
        session.head.return_value = response(200)
        assert check_url("https://example.com", session=session) is CheckStatus.OK
        session.get.assert_not_called()

    def test_redirect_final_status_counts(self):
        session = MagicMock()
        session.head.return_value = response(301)
        assert check_url("https://example.com", session=session) is CheckStatus.OK

    def test_not_found(self):
        session = MagicMock()
        session.head.return_value = response(404)
        assert check_url("https://example.com", session=session) is CheckStatus.BROKEN

    def test_head_not_allowed_falls_back_to_get(self):
        session = MagicMock()
        session.head.return_value = response(405)
        get_response = response(200)
        session.get.return_value = get_response

        assert check_url("https://example.com", session=session, timeout=2) is CheckStatus.OK
        session.get.assert_called_once_with("https://example.com", allow_redirects=True,
                                            timeout=2, stream=True)
        get_response.close.assert_called_once()

    @pytest.mark.parametrize("error", [
        requests.Timeout(), requests.ConnectionError(), requests.TooManyRedirects(),
    ])
    def test_request_errors_are_broken(self, error):
        session = MagicMock()
        session.head.side_effect = error
        assert check_url("https://example.com", session=session) is CheckStatus.BROKEN


class TestCheckBookmarks:
    """Test check_bookmarks()."""

    def test_updates_status_in_order(self, sample_bookmarks):
        session = MagicMock()
        session.head.side_effect = lambda url, **kwargs: response(404 if "github" in url else 200)

        checked = check_bookmarks(sample_bookmarks, max_workers=2, session=session)

        assert [b.id for b in checked] == ["a1", "b2", "c3"]
        assert [b.check_status for b in checked] == [CheckStatus.OK, CheckStatus.BROKEN, CheckStatus.OK]
        assert all(b.last_checked_at for b in checked)

    def test_inputs_not_mutated(self, sample_bookmarks):
        session = MagicMock()
        session.head.return_value = response(500)

        check_bookmarks(sample_bookmarks, session=session)

        assert sample_bookmarks[0].check_status is CheckStatus.UNKNOWN
        assert sample_bookmarks[0].last_checked_at is None

    def test_empty(self):
        assert check_bookmarks([], session=MagicMock()) == []
