"""
Import/export boundary for bookmark records.

Arbitrary externally supplied values are coerced into valid
:class:`~linkshelf.models.Bookmark` records or rejected. A malformed
record is dropped from its batch; it never aborts the whole import.
"""
import re
import json
import math
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Union

from linkshelf.canonical import canonicalize, extract_domain
from linkshelf.constants import MAX_RATING, PLACEHOLDER_TITLE
from linkshelf.models import Bookmark, CheckStatus, Priority, generate_id, now_ms
from linkshelf.progress import with_progress

logger = logging.getLogger(__name__)

TAG_SPLIT_RE = re.compile(r'[\s,]+')

# Records exported by the browser app use camelCase keys
FIELD_ALIASES = {
    'openCount': 'open_count',
    'lastOpenedAt': 'last_opened_at',
    'checkStatus': 'check_status',
    'lastCheckedAt': 'last_checked_at',
}


@dataclass
class ImportResult:
    """Outcome of a batch import."""
    bookmarks: List[Bookmark] = field(default_factory=list)
    skipped: int = 0

    @property
    def imported(self) -> int:
        return len(self.bookmarks)


def parse_tags(value: Any) -> List[str]:
    """
    Normalize tags from a comma/whitespace separated string or a list.

    Non-string list entries are ignored. Tags are trimmed, lowercased and
    deduplicated with first-occurrence order kept.
    """
    if isinstance(value, str):
        raw = TAG_SPLIT_RE.split(value)
    elif isinstance(value, (list, tuple)):
        raw = [item for item in value if isinstance(item, str)]
    else:
        return []

    tags = []
    for tag in raw:
        tag = tag.strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _count(value: Any) -> int:
    return max(0, int(value)) if _is_number(value) else 0


def _optional_time(value: Any) -> Optional[int]:
    if _is_number(value) and value > 0:
        return int(value)
    return None


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _enum_or_default(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return default


def normalize_record(value: Any) -> Optional[Bookmark]:
    """
    Coerce an arbitrary value into a Bookmark.

    Args:
        value: Decoded JSON value, typically a dict

    Returns:
        A valid Bookmark, or None when ``value`` has no usable ``url``
    """
    if not isinstance(value, Mapping):
        return None
    data = {FIELD_ALIASES.get(k, k): v for k, v in value.items()}

    url = _non_empty_str(data.get('url'))
    if url is None:
        return None
    url = canonicalize(url)

    rating = data.get('rating')
    rating = min(MAX_RATING, max(0, int(rating))) if _is_number(rating) else 0

    timestamp = data.get('timestamp')

    return Bookmark(
        id=_non_empty_str(data.get('id')) or generate_id(),
        url=url,
        title=_non_empty_str(data.get('title')) or PLACEHOLDER_TITLE,
        domain=_non_empty_str(data.get('domain')) or extract_domain(url),
        image=_non_empty_str(data.get('image')),
        tags=parse_tags(data.get('tags')),
        timestamp=int(timestamp) if _is_number(timestamp) else now_ms(),
        favorite=data.get('favorite') is True,
        archived=data.get('archived') is True,
        notes=data.get('notes') if isinstance(data.get('notes'), str) else '',
        rating=rating,
        priority=_enum_or_default(Priority, data.get('priority'), Priority.MEDIUM),
        open_count=_count(data.get('open_count')),
        last_opened_at=_optional_time(data.get('last_opened_at')),
        check_status=_enum_or_default(CheckStatus, data.get('check_status'), CheckStatus.UNKNOWN),
        last_checked_at=_optional_time(data.get('last_checked_at')),
    )


@with_progress("Importing bookmarks")
def import_records(values: Iterable[Any], reserved_ids: Iterable[str] = ()) -> ImportResult:
    """
    Normalize a batch of records, dropping the invalid ones.

    A record whose id is already reserved, or was taken by an earlier
    record of the batch, gets a freshly generated id.

    Args:
        values: Decoded records
        reserved_ids: Ids already present in the target collection

    Returns:
        ImportResult with the valid bookmarks and the number skipped
    """
    result = ImportResult()
    taken = set(reserved_ids)
    for value in values:
        bookmark = normalize_record(value)
        if bookmark is None:
            result.skipped += 1
            continue
        if bookmark.id in taken:
            logger.debug(f"Id {bookmark.id} already in use, assigning a new one to {bookmark.url}")
            bookmark = bookmark.copy(id=generate_id())
        taken.add(bookmark.id)
        result.bookmarks.append(bookmark)

    if result.skipped:
        logger.warning(f"Skipped {result.skipped} malformed records during import")
    return result


def load_json(path: Union[str, Path]) -> ImportResult:
    """
    Load and normalize bookmarks from a JSON file holding a list of records.

    A missing file is an empty import. A file that is not a JSON list is
    logged and treated as empty.
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"No existing {path} found. Starting with an empty bookmark list.")
        return ImportResult()

    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError:
            logger.error(f"Error decoding JSON from {path}. Starting with an empty list.")
            return ImportResult()

    if not isinstance(data, list):
        logger.error(f"Expected a list of bookmarks in {path}, got {type(data).__name__}")
        return ImportResult()

    return import_records(data)


def export_json(bookmarks: Iterable[Bookmark], path: Union[str, Path], pretty: bool = True):
    """Write bookmarks to a JSON file as a flat list of records."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records = [b.to_dict() for b in bookmarks]
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(records, f, ensure_ascii=False, indent=2 if pretty else None)
    logger.debug(f"Saved {len(records)} bookmarks to {path}.")
