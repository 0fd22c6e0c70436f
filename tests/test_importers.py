"""
Tests for linkshelf/importers.py record normalization and JSON I/O.
"""
import json
import math

import pytest

from linkshelf.dedup import merge_duplicates
from linkshelf.importers import (
    ImportResult,
    export_json,
    import_records,
    load_json,
    normalize_record,
    parse_tags,
)
from linkshelf.models import CheckStatus, Priority

from conftest import make_bookmark


class TestParseTags:
    """Test parse_tags()."""

    def test_comma_and_space_separated(self):
        assert parse_tags("Python, web  dev,python") == ["python", "web", "dev"]

    def test_list(self):
        assert parse_tags([" A ", "b", "a"]) == ["a", "b"]

    def test_non_string_entries_ignored(self):
        assert parse_tags(["ok", 5, None, {"x": 1}]) == ["ok"]

    def test_other_types(self):
        assert parse_tags(None) == []
        assert parse_tags(42) == []

    def test_empty_string(self):
        assert parse_tags(" , ") == []


class TestNormalizeRecord:
    """Test normalize_record() coercions."""

    def test_minimal_record(self):
        bookmark = normalize_record({"url": "example.com/a"})
        assert bookmark.url == "https://example.com/a"
        assert bookmark.title == "Saved link"
        assert bookmark.domain == "EXAMPLE"
        assert bookmark.id
        assert bookmark.tags == []
        assert bookmark.priority is Priority.MEDIUM
        assert bookmark.check_status is CheckStatus.UNKNOWN
        assert bookmark.timestamp > 0

    @pytest.mark.parametrize("value", [
        None, "https://example.com", 42, [], {}, {"url": ""}, {"url": "   "}, {"url": 5},
    ])
    def test_rejects_invalid(self, value):
        assert normalize_record(value) is None

    def test_keeps_valid_fields(self):
        bookmark = normalize_record({
            "id": "abc",
            "url": "https://example.com/a",
            "title": " Title ",
            "domain": "EX",
            "image": "https://example.com/a.jpg",
            "tags": "one two",
            "timestamp": 1234,
            "favorite": True,
            "archived": True,
            "notes": "n",
            "rating": 3,
            "priority": "high",
            "open_count": 2,
            "last_opened_at": 99,
            "check_status": "broken",
            "last_checked_at": 77,
        })
        assert bookmark.id == "abc"
        assert bookmark.title == "Title"
        assert bookmark.domain == "EX"
        assert bookmark.tags == ["one", "two"]
        assert bookmark.timestamp == 1234
        assert bookmark.favorite and bookmark.archived
        assert bookmark.rating == 3
        assert bookmark.priority is Priority.HIGH
        assert bookmark.open_count == 2
        assert bookmark.last_opened_at == 99
        assert bookmark.check_status is CheckStatus.BROKEN
        assert bookmark.last_checked_at == 77

    def test_rating_clamped(self):
        assert normalize_record({"url": "a.com", "rating": 9}).rating == 5
        assert normalize_record({"url": "a.com", "rating": -2}).rating == 0
        assert normalize_record({"url": "a.com", "rating": "4"}).rating == 0

    def test_bad_enums_default(self):
        bookmark = normalize_record({"url": "a.com", "priority": "urgent", "check_status": ["ok"]})
        assert bookmark.priority is Priority.MEDIUM
        assert bookmark.check_status is CheckStatus.UNKNOWN

    def test_flags_require_true(self):
        bookmark = normalize_record({"url": "a.com", "favorite": "yes", "archived": 1})
        assert bookmark.favorite is False
        assert bookmark.archived is False

    def test_bad_numbers(self):
        bookmark = normalize_record({
            "url": "a.com",
            "open_count": -4,
            "last_opened_at": 0,
            "last_checked_at": math.nan,
            "timestamp": "yesterday",
        })
        assert bookmark.open_count == 0
        assert bookmark.last_opened_at is None
        assert bookmark.last_checked_at is None
        assert bookmark.timestamp > 0

    def test_non_string_notes(self):
        assert normalize_record({"url": "a.com", "notes": 12}).notes == ""

    def test_camel_case_aliases(self):
        bookmark = normalize_record({
            "url": "a.com",
            "openCount": 4,
            "lastOpenedAt": 10,
            "checkStatus": "ok",
            "lastCheckedAt": 20,
        })
        assert bookmark.open_count == 4
        assert bookmark.last_opened_at == 10
        assert bookmark.check_status is CheckStatus.OK
        assert bookmark.last_checked_at == 20


class TestImportRecords:
    """Test import_records() batches."""

    def test_skips_invalid_records(self):
        result = import_records([{"url": "a.com"}, "junk", {"title": "no url"}, {"url": "b.com"}])
        assert result.imported == 2
        assert result.skipped == 2
        assert [b.url for b in result.bookmarks] == ["https://a.com/", "https://b.com/"]

    def test_repeated_ids_in_batch_get_new_ids(self):
        result = import_records([
            {"id": "x", "url": "a.com"},
            {"id": "x", "url": "b.com"},
            {"id": "x", "url": "c.com"},
        ])
        ids = [b.id for b in result.bookmarks]
        assert ids[0] == "x"
        assert len(set(ids)) == 3

    def test_reserved_ids_not_reused(self):
        result = import_records([{"id": "a1", "url": "other.org/y"}, {"id": "z9", "url": "z.org"}],
                                reserved_ids={"a1"})
        assert result.bookmarks[0].id != "a1"
        assert result.bookmarks[0].url == "https://other.org/y"
        assert result.bookmarks[1].id == "z9"

    def test_import_then_merge_collapses_variants(self):
        result = import_records([
            {"url": "example.com/a", "timestamp": 1},
            {"url": "https://example.com/a/", "timestamp": 2},
        ])
        merged = merge_duplicates(result.bookmarks)
        assert merged.removed_count == 1
        assert len(merged.merged) == 1


class TestJsonFiles:
    """Test load_json() and export_json()."""

    def test_missing_file(self, tmp_path):
        assert load_json(tmp_path / "missing.json") == ImportResult()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_json(path).imported == 0

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "object.json"
        path.write_text(json.dumps({"url": "a.com"}), encoding="utf-8")
        assert load_json(path).imported == 0

    def test_export_then_load(self, tmp_path, sample_bookmarks):
        path = tmp_path / "nested" / "library.json"
        export_json(sample_bookmarks, path)

        records = json.loads(path.read_text(encoding="utf-8"))
        assert records[1]["priority"] == "high"
        assert records[1]["check_status"] == "ok"

        loaded = load_json(path)
        assert loaded.skipped == 0
        assert [b.id for b in loaded.bookmarks] == ["a1", "b2", "c3"]
        assert loaded.bookmarks[1].priority is Priority.HIGH
        assert loaded.bookmarks[0].tags == ["python", "docs"]

    def test_export_unicode(self, tmp_path):
        path = tmp_path / "library.json"
        export_json([make_bookmark(title="Café")], path, pretty=False)
        assert "Café" in path.read_text(encoding="utf-8")
