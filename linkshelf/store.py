"""
Bookmark store.

Holds one ordered bookmark collection (newest first) and persists it as a
flat JSON list. The canonicalizer, resolver and merge engine stay
stateless; the store is the object callers pass around instead of global
state, and it swaps merged snapshots in under a lock.
"""
import logging
import threading
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from linkshelf.canonical import dedup_key, ensure_valid_url, extract_domain
from linkshelf.constants import MAX_RATING, PLACEHOLDER_TITLE
from linkshelf.dedup import merge_duplicates
from linkshelf.exceptions import BookmarkNotFoundError, DuplicateBookmarkError
from linkshelf.importers import ImportResult, export_json, import_records, load_json, parse_tags
from linkshelf.models import Bookmark, CheckStatus, Priority, generate_id, now_ms

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = {'id', 'timestamp'}


class BookmarkStore:
    """An ordered, lock-guarded bookmark collection with JSON persistence."""

    def __init__(self, path: Optional[Union[str, Path]] = None,
                 bookmarks: Optional[Iterable[Bookmark]] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._bookmarks: List[Bookmark] = list(bookmarks or [])

    def __len__(self) -> int:
        return len(self._bookmarks)

    def __iter__(self):
        return iter(self.snapshot())

    def snapshot(self) -> List[Bookmark]:
        """Return the current collection as a new list."""
        with self._lock:
            return list(self._bookmarks)

    # Persistence

    def load(self) -> ImportResult:
        """Replace the collection with the contents of the JSON file."""
        if self.path is None:
            return ImportResult()
        result = load_json(self.path)
        with self._lock:
            self._bookmarks = list(result.bookmarks)
        logger.debug(f"Loaded {result.imported} bookmarks from {self.path}")
        return result

    def save(self):
        """Write the collection to the JSON file."""
        if self.path is None:
            logger.error("No library path set. Cannot save bookmarks.")
            return
        export_json(self.snapshot(), self.path)

    # Lookup

    def get(self, bookmark_id: str) -> Bookmark:
        for bookmark in self.snapshot():
            if bookmark.id == bookmark_id:
                return bookmark
        raise BookmarkNotFoundError(bookmark_id)

    def find(self, url: str) -> Optional[Bookmark]:
        """Find the bookmark whose dedup key matches ``url``."""
        key = dedup_key(url)
        return next((b for b in self.snapshot() if b.key == key), None)

    def tags(self) -> List[str]:
        """All tags in the collection, sorted."""
        return sorted({tag for b in self.snapshot() for tag in b.tags})

    def filter_by_tag(self, tag: Optional[str]) -> List[Bookmark]:
        if not tag:
            return self.snapshot()
        return [b for b in self.snapshot() if b.has_tag(tag)]

    # Mutation

    def add(self, url: str,
            tags: Any = None,
            resolver=None,
            allow_duplicate: bool = False) -> Bookmark:
        """
        Validate, resolve and add a bookmark at the top of the collection.

        Args:
            url: URL typed by the user
            tags: Tags as a string or list
            resolver: Object with ``resolve(url)``; without one the
                placeholder title is used
            allow_duplicate: Add even when the dedup key already exists

        Returns:
            The new bookmark

        Raises:
            InvalidURLError: If the URL fails validation
            DuplicateBookmarkError: If the URL is already bookmarked
        """
        normalized = ensure_valid_url(url)

        existing = self.find(normalized)
        if existing is not None and not allow_duplicate:
            raise DuplicateBookmarkError(normalized, existing)

        title, image = PLACEHOLDER_TITLE, None
        if resolver is not None:
            metadata = resolver.resolve(normalized)
            if metadata is not None:
                title, image = metadata.title or title, metadata.image

        bookmark = Bookmark(
            id=generate_id(),
            url=normalized,
            title=title,
            domain=extract_domain(normalized),
            image=image,
            tags=parse_tags(tags),
            timestamp=now_ms(),
        )
        with self._lock:
            self._bookmarks.insert(0, bookmark)
        logger.info(f"Added bookmark {bookmark.id}: {bookmark.url}")
        return bookmark

    def remove(self, bookmark_id: str) -> Bookmark:
        with self._lock:
            for i, bookmark in enumerate(self._bookmarks):
                if bookmark.id == bookmark_id:
                    del self._bookmarks[i]
                    logger.info(f"Removed bookmark {bookmark_id}")
                    return bookmark
        raise BookmarkNotFoundError(bookmark_id)

    def update(self, bookmark_id: str, **fields) -> Bookmark:
        """
        Update mutable fields of a bookmark.

        Changing ``url`` re-derives ``domain``.

        Raises:
            BookmarkNotFoundError: If the ID does not exist
            ValueError: For unknown or immutable fields and invalid values
        """
        for name in fields:
            if name in IMMUTABLE_FIELDS or name not in Bookmark.__dataclass_fields__:
                raise ValueError(f"Cannot update field: {name}")

        if 'rating' in fields:
            rating = fields['rating']
            if isinstance(rating, bool) or not isinstance(rating, int) or not 0 <= rating <= MAX_RATING:
                raise ValueError(f"Rating must be an integer from 0 to {MAX_RATING}")
        if 'priority' in fields:
            fields['priority'] = Priority(fields['priority'])
        if 'check_status' in fields:
            fields['check_status'] = CheckStatus(fields['check_status'])
        if 'tags' in fields:
            fields['tags'] = parse_tags(fields['tags'])
        if 'url' in fields:
            fields['url'] = ensure_valid_url(fields['url'])
            fields['domain'] = extract_domain(fields['url'])

        with self._lock:
            for i, bookmark in enumerate(self._bookmarks):
                if bookmark.id == bookmark_id:
                    updated = bookmark.copy(**fields)
                    self._bookmarks[i] = updated
                    return updated
        raise BookmarkNotFoundError(bookmark_id)

    def record_open(self, bookmark_id: str) -> Bookmark:
        """Count an open of the bookmark and stamp ``last_opened_at``."""
        with self._lock:
            for i, bookmark in enumerate(self._bookmarks):
                if bookmark.id == bookmark_id:
                    opened = bookmark.copy(open_count=bookmark.open_count + 1,
                                           last_opened_at=now_ms())
                    self._bookmarks[i] = opened
                    return opened
        raise BookmarkNotFoundError(bookmark_id)

    def replace_all(self, bookmarks: Iterable[Bookmark]):
        """Atomically swap in a new collection."""
        bookmarks = list(bookmarks)
        with self._lock:
            self._bookmarks = bookmarks

    def merge_duplicates(self) -> int:
        """
        Merge duplicate bookmarks in place.

        Returns:
            Number of records eliminated
        """
        with self._lock:
            result = merge_duplicates(list(self._bookmarks))
            self._bookmarks = result.merged
        return result.removed_count

    def import_records(self, values: Iterable[Any]) -> ImportResult:
        """Normalize external records and append the valid ones; colliding ids are replaced."""
        values = list(values)
        with self._lock:
            result = import_records(values, reserved_ids={b.id for b in self._bookmarks})
            self._bookmarks.extend(result.bookmarks)
        logger.info(f"Imported {result.imported} bookmarks ({result.skipped} skipped)")
        return result
