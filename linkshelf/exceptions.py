"""Exceptions raised by linkshelf operations."""


class LinkshelfError(Exception):
    """Base class for linkshelf errors."""


class InvalidURLError(LinkshelfError, ValueError):
    """Raised when a URL fails validation."""

    def __init__(self, url: str, message: str):
        self.url = url
        self.message = message
        super().__init__(message)


class DuplicateBookmarkError(LinkshelfError):
    """Raised when adding a URL whose dedup key is already in the collection."""

    def __init__(self, url: str, existing):
        self.url = url
        self.existing = existing
        super().__init__(f"Bookmark already in collection: {existing.url}")


class BookmarkNotFoundError(LinkshelfError, KeyError):
    """Raised when a bookmark ID does not exist."""

    def __init__(self, bookmark_id: str):
        self.bookmark_id = bookmark_id
        super().__init__(f"Bookmark not found: {bookmark_id}")

    def __str__(self) -> str:
        return self.args[0]
