"""
Duplicate detection and merging for bookmark collections.

Bookmarks are duplicates when their dedup keys are equal, regardless of
``id``. Merging folds each duplicate group into one record under fixed
field-level conflict rules; the operation is pure and idempotent.
"""
from typing import Dict, List, NamedTuple, Optional
from collections import defaultdict
import logging

from linkshelf.constants import NOTES_SEPARATOR
from linkshelf.models import Bookmark
from linkshelf.progress import with_progress

logger = logging.getLogger(__name__)


class MergeResult(NamedTuple):
    """Merged collection and the number of records eliminated."""
    merged: List[Bookmark]
    removed_count: int


def _group_by_key(bookmarks) -> Dict[str, List[Bookmark]]:
    groups = defaultdict(list)
    for bookmark in bookmarks:
        groups[bookmark.key].append(bookmark)
    return groups


@with_progress("Finding duplicates")
def find_duplicates(bookmarks: List[Bookmark]) -> Dict[str, List[Bookmark]]:
    """
    Find duplicate bookmarks.

    Args:
        bookmarks: Bookmarks to inspect

    Returns:
        Dictionary mapping dedup keys to groups of more than one bookmark
    """
    groups = _group_by_key(bookmarks)
    return {k: v for k, v in groups.items() if len(v) > 1}


def _merge_notes(a: str, b: str) -> str:
    a, b = a or '', b or ''
    if a.strip() and b.strip() and a != b:
        return f"{a}{NOTES_SEPARATOR}{b}"
    return a if a.strip() else b


def _latest(a: Optional[int], b: Optional[int]) -> Optional[int]:
    latest = max(a or 0, b or 0)
    return latest or None


def merge_pair(a: Bookmark, b: Bookmark) -> Bookmark:
    """
    Merge bookmark ``b`` into ``a`` and return the result as a new record.

    ``a`` is the newer record: it keeps its id, url, domain and timestamp.

    Args:
        a: Destination (accumulated) bookmark
        b: Bookmark being folded in

    Returns:
        Merged bookmark; neither input is modified
    """
    tags = list(a.tags)
    tags.extend(t for t in b.tags if t not in tags)

    title_a, title_b = (a.title or '').strip(), (b.title or '').strip()

    return a.copy(
        tags=tags,
        notes=_merge_notes(a.notes, b.notes),
        open_count=a.open_count + b.open_count,
        last_opened_at=_latest(a.last_opened_at, b.last_opened_at),
        check_status=b.check_status if b.check_status.rank > a.check_status.rank else a.check_status,
        last_checked_at=_latest(a.last_checked_at, b.last_checked_at),
        rating=max(a.rating, b.rating),
        priority=b.priority if b.priority.rank > a.priority.rank else a.priority,
        title=b.title if len(title_b) > len(title_a) else a.title,
        image=a.image or b.image,
        favorite=a.favorite or b.favorite,
        archived=a.archived and b.archived,
    )


def merge_group(group: List[Bookmark]) -> Bookmark:
    """Fold a duplicate group into one bookmark, newest first."""
    ordered = sorted(group, key=lambda b: b.timestamp, reverse=True)
    merged = ordered[0].copy()
    for bookmark in ordered[1:]:
        merged = merge_pair(merged, bookmark)
    return merged


@with_progress("Merging duplicates")
def merge_duplicates(bookmarks: List[Bookmark]) -> MergeResult:
    """
    Merge every group of duplicate bookmarks into a single record.

    Groups keep the position of their first member in the input.

    Args:
        bookmarks: Bookmark collection

    Returns:
        MergeResult(merged, removed_count); inputs are not mutated

    Example:
        >>> result = merge_duplicates(bookmarks)
        >>> merge_duplicates(result.merged).removed_count
        0
    """
    groups = _group_by_key(bookmarks)

    merged = [merge_group(group) for group in groups.values()]
    removed = sum(len(group) for group in groups.values()) - len(merged)
    if removed:
        logger.info(f"Merged {removed} duplicate bookmarks into {len(merged)} records")
    return MergeResult(merged, removed)


def get_duplicate_stats(bookmarks: List[Bookmark]) -> Dict:
    """
    Get statistics about duplicates in the bookmark collection.

    Args:
        bookmarks: Bookmark collection

    Returns:
        Dictionary with duplicate statistics
    """
    duplicates = find_duplicates.without_progress(bookmarks)

    total_duplicates = sum(len(group) for group in duplicates.values())

    most_duplicated = sorted(
        [(key, len(group)) for key, group in duplicates.items()],
        key=lambda x: x[1],
        reverse=True
    )[:10]

    return {
        'total_bookmarks': len(bookmarks),
        'duplicate_groups': len(duplicates),
        'total_duplicates': total_duplicates,
        'bookmarks_to_remove': total_duplicates - len(duplicates),
        'most_duplicated': most_duplicated,
        'duplicate_percentage': (total_duplicates / len(bookmarks) * 100) if bookmarks else 0
    }
