"""
linkshelf - collect, tag and retrieve web bookmarks.

The core is a link normalization and metadata resolution engine:
- canonical URLs and dedup keys that ignore fragments, trailing slashes
  and tracking parameters
- a duplicate merge engine with field-level conflict rules
- best-effort title/image resolution through content proxies

Example Usage:
    >>> from linkshelf import BookmarkStore, MetadataResolver
    >>> store = BookmarkStore("linkshelf.json")
    >>> store.load()
    >>> store.add("example.com/article", tags="reading", resolver=MetadataResolver())
    >>> store.merge_duplicates()
    >>> store.save()
"""

__version__ = "0.1.0"

# Canonicalization
from linkshelf.canonical import canonicalize, dedup_key, validate_url, extract_domain

# Configuration
from linkshelf.config import LinkshelfConfig, get_config, init_config

# Models
from linkshelf.models import Bookmark, CheckStatus, Priority

# Metadata
from linkshelf.image_scorer import pick_best_image
from linkshelf.extractor import ContentFormat, MetadataResult, extract
from linkshelf.content_fetcher import ContentFetcher, FetchResponse, MetadataResolver, ResolutionSlot

# Dedup / import / store
from linkshelf.dedup import MergeResult, merge_duplicates
from linkshelf.importers import ImportResult, import_records, normalize_record
from linkshelf.store import BookmarkStore

__all__ = [
    "canonicalize",
    "dedup_key",
    "validate_url",
    "extract_domain",
    "LinkshelfConfig",
    "get_config",
    "init_config",
    "Bookmark",
    "CheckStatus",
    "Priority",
    "pick_best_image",
    "ContentFormat",
    "MetadataResult",
    "extract",
    "ContentFetcher",
    "FetchResponse",
    "MetadataResolver",
    "ResolutionSlot",
    "MergeResult",
    "merge_duplicates",
    "ImportResult",
    "import_records",
    "normalize_record",
    "BookmarkStore",
]
