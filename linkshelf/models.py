"""
Bookmark record model for linkshelf.

Records are plain dataclasses; the store keeps them as a flat list and
persists them as JSON. Duplicate detection never compares ``url``
verbatim, it compares :func:`linkshelf.canonical.dedup_key`.
"""
import time
import uuid
from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from linkshelf.canonical import dedup_key


class Priority(str, Enum):
    """Reading priority of a bookmark."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


class CheckStatus(str, Enum):
    """Result of the last reachability check."""
    UNKNOWN = "unknown"
    OK = "ok"
    BROKEN = "broken"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}
_STATUS_RANK = {CheckStatus.UNKNOWN: 0, CheckStatus.OK: 1, CheckStatus.BROKEN: 2}


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_id() -> str:
    """Generate an opaque bookmark identifier."""
    return uuid.uuid4().hex[:12]


@dataclass
class Bookmark:
    """
    A saved web resource.

    Attributes:
        id: Opaque identifier, unique within a collection
        url: Fully-qualified URL
        title: Display title
        image: Representative image URL, None falls back to a placeholder
        domain: Display label derived from the hostname
        tags: Lowercase tags, display order preserved
        timestamp: Creation time in epoch milliseconds
        favorite: Marked as favorite
        archived: Hidden from the default listing
        notes: Free-form notes
        rating: 0 to 5
        priority: Reading priority
        open_count: Number of times opened
        last_opened_at: Epoch ms of last open
        check_status: Result of the last reachability check
        last_checked_at: Epoch ms of last check
    """
    id: str
    url: str
    title: str
    domain: str
    image: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    timestamp: int = field(default_factory=now_ms)

    favorite: bool = False
    archived: bool = False
    notes: str = ""

    rating: int = 0
    priority: Priority = Priority.MEDIUM

    open_count: int = 0
    last_opened_at: Optional[int] = None

    check_status: CheckStatus = CheckStatus.UNKNOWN
    last_checked_at: Optional[int] = None

    @property
    def key(self) -> str:
        """Dedup key of the URL, recomputed on every access."""
        return dedup_key(self.url)

    def has_tag(self, tag: str) -> bool:
        return tag.lower() in self.tags

    def copy(self, **changes) -> "Bookmark":
        """Return a copy with independent tag list, optionally with changes."""
        changes.setdefault('tags', list(self.tags))
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted record shape."""
        data = asdict(self)
        data['priority'] = self.priority.value
        data['check_status'] = self.check_status.value
        return data
