"""
Tests for linkshelf/canonical.py URL canonicalization.

Covers canonical URLs, dedup keys, add-path validation, domain labels
and URL composition helpers.
"""
import pytest

from linkshelf.canonical import (
    absolutize,
    canonicalize,
    dedup_key,
    ensure_valid_url,
    extract_domain,
    resolve_against,
    validate_url,
)
from linkshelf.exceptions import InvalidURLError


class TestCanonicalize:
    """Test canonicalize()."""

    def test_adds_default_scheme(self):
        """Input without a scheme gets https://."""
        assert canonicalize("example.com/a") == "https://example.com/a"

    def test_bare_host_gets_root_path(self):
        assert canonicalize("example.com") == "https://example.com/"

    def test_lowercases_host(self):
        assert canonicalize("https://Example.COM/Path") == "https://example.com/Path"

    def test_trims_whitespace(self):
        assert canonicalize("  https://example.com/x  ") == "https://example.com/x"

    def test_fixes_single_slash_typo(self):
        assert canonicalize("http:/example.com/a") == "https://example.com/a"

    def test_fixes_extra_slashes(self):
        assert canonicalize("https:///example.com/a") == "https://example.com/a"

    def test_drops_default_port(self):
        assert canonicalize("https://example.com:443/a") == "https://example.com/a"

    def test_keeps_custom_port(self):
        assert canonicalize("https://example.com:8443/a") == "https://example.com:8443/a"

    def test_keeps_query_and_fragment(self):
        assert canonicalize("example.com/a?b=1#top") == "https://example.com/a?b=1#top"

    def test_unparsable_input_returned_trimmed(self):
        """Invalid ports cannot be parsed, so the trimmed input comes back."""
        assert canonicalize(" https://example.com:abc/ ") == "https://example.com:abc/"

    def test_non_string_input(self):
        assert canonicalize(None) == ""


class TestDedupKey:
    """Test dedup_key()."""

    def test_trailing_slash_ignored(self):
        assert dedup_key("https://a.com/x/") == dedup_key("https://a.com/x")

    def test_multiple_trailing_slashes_collapsed(self):
        assert dedup_key("https://a.com/x///") == "a.com/x"

    def test_root_path_preserved(self):
        assert dedup_key("https://a.com") == "a.com/"
        assert dedup_key("https://a.com/") == "a.com/"

    def test_fragment_ignored(self):
        assert dedup_key("https://a.com/x#section") == dedup_key("https://a.com/x")

    def test_tracking_params_removed(self):
        assert dedup_key("https://site.com/page?utm_source=x&id=1") == dedup_key("https://site.com/page?id=1")

    @pytest.mark.parametrize("param", [
        "utm_medium", "UTM_Campaign", "gclid", "fbclid", "igshid", "mc_cid", "mc_eid",
    ])
    def test_each_tracking_param_removed(self, param):
        assert dedup_key(f"https://site.com/p?{param}=abc") == "site.com/p"

    def test_query_order_ignored(self):
        assert dedup_key("https://a.com/x?b=2&a=1") == dedup_key("https://a.com/x?a=1&b=2")

    def test_query_order_after_tracking_removal(self):
        assert dedup_key("https://a.com/x?b=2&utm_source=z&a=1") == dedup_key("https://a.com/x?a=1&b=2#frag")

    def test_key_shape(self):
        assert dedup_key("https://Site.com/Page/?id=1&fbclid=zzz") == "site.com/Page?id=1"

    def test_scheme_and_case_of_host_ignored(self):
        assert dedup_key("example.com/a") == dedup_key("https://EXAMPLE.com/a/")

    def test_different_paths_differ(self):
        assert dedup_key("https://a.com/x") != dedup_key("https://a.com/y")

    def test_unparsable_falls_back_to_lowercase_text(self):
        """Two unparsable duplicates still collide."""
        assert dedup_key("  HTTPS://bad:port/  ") == "https://bad:port/"
        assert dedup_key("HTTPS://bad:port/") == dedup_key("https://bad:port/ ")

    def test_empty_string(self):
        assert dedup_key("") == ""


class TestValidateUrl:
    """Test validate_url() on the add path."""

    def test_accepts_bare_domain(self):
        result = validate_url("example.com")
        assert result.error is None
        assert result.normalized == "https://example.com/"
        assert result.ok

    def test_rejects_embedded_space(self):
        result = validate_url("exa mple.com")
        assert result.error is not None
        assert result.normalized is None

    def test_rejects_missing_dot(self):
        assert validate_url("example").error is not None

    def test_rejects_empty(self):
        assert validate_url("   ").error is not None

    def test_rejects_short_hostname(self):
        assert validate_url("https://.c/").error is not None

    def test_rejects_hostname_starting_with_dot(self):
        assert validate_url("https://.com").error is not None

    def test_rejects_invalid_host_characters(self):
        assert validate_url("https://exa<mple>.com").error is not None

    def test_rejects_bad_port(self):
        assert validate_url("https://example.com:99999999/").error is not None

    def test_corrects_protocol_typo(self):
        result = validate_url("http:/example.com/page")
        assert result.normalized == "https://example.com/page"

    def test_corrects_extra_slashes(self):
        result = validate_url("https:////example.com")
        assert result.normalized == "https://example.com/"

    def test_dot_only_in_scheme_is_rejected(self):
        """The dot check ignores the scheme portion."""
        assert validate_url("https://localhost").error is not None

    def test_ensure_valid_url_raises(self):
        with pytest.raises(InvalidURLError) as exc_info:
            ensure_valid_url("example")
        assert exc_info.value.url == "example"

    def test_ensure_valid_url_returns_normalized(self):
        assert ensure_valid_url("example.com/a") == "https://example.com/a"


class TestExtractDomain:
    """Test extract_domain() display labels."""

    def test_second_level_label(self):
        assert extract_domain("https://blog.example.com/post") == "EXAMPLE"

    def test_strips_www(self):
        assert extract_domain("https://www.github.com") == "GITHUB"

    def test_without_scheme(self):
        assert extract_domain("python.org/docs") == "PYTHON"

    def test_single_label_host(self):
        assert extract_domain("http://localhost/") == "LOCALHOST"

    def test_invalid_input(self):
        assert extract_domain("") == "LINK"
        assert extract_domain(None) == "LINK"


class TestResolveAgainst:
    """Test resolve_against()."""

    BASE = "https://site.com/blog/post"

    def test_protocol_relative(self):
        assert resolve_against(self.BASE, "//cdn.site.com/a.jpg") == "https://cdn.site.com/a.jpg"

    def test_root_relative(self):
        assert resolve_against(self.BASE, "/img/a.jpg") == "https://site.com/img/a.jpg"

    def test_relative(self):
        assert resolve_against(self.BASE, "a.jpg") == "https://site.com/blog/a.jpg"

    def test_absolute(self):
        assert resolve_against(self.BASE, "https://other.com/a.jpg") == "https://other.com/a.jpg"

    def test_data_uri_passes_through(self):
        uri = "data:image/png;base64,AAAA"
        assert resolve_against(self.BASE, uri) == uri

    def test_blob_passes_through(self):
        assert resolve_against(self.BASE, "blob:https://site.com/1234") == "blob:https://site.com/1234"

    def test_empty(self):
        assert resolve_against(self.BASE, "  ") == ""
        assert resolve_against(self.BASE, None) == ""


class TestAbsolutize:
    """Test absolutize() origin composition."""

    BASE = "https://site.com/blog/post"

    def test_absolute_unchanged(self):
        assert absolutize(self.BASE, "https://x.com/a.jpg") == "https://x.com/a.jpg"

    def test_protocol_relative(self):
        assert absolutize(self.BASE, "//cdn.com/a.jpg") == "https://cdn.com/a.jpg"

    def test_root_relative(self):
        assert absolutize(self.BASE, "/a.jpg") == "https://site.com/a.jpg"

    def test_relative_uses_origin(self):
        assert absolutize(self.BASE, "img/a.jpg") == "https://site.com/img/a.jpg"

    def test_base_without_origin(self):
        assert absolutize("not a url", "a.jpg") is None
