"""
Bookmark health checks.

Verifies bookmark URLs are still reachable and records the outcome in
``check_status`` / ``last_checked_at``.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

import requests

from linkshelf.constants import DEFAULT_MAX_WORKERS, HEALTH_CHECK_TIMEOUT
from linkshelf.models import Bookmark, CheckStatus, now_ms
from linkshelf.progress import with_progress

logger = logging.getLogger(__name__)


def check_url(url: str,
              session: Optional[requests.Session] = None,
              timeout: float = HEALTH_CHECK_TIMEOUT) -> CheckStatus:
    """
    Check if a URL is reachable.

    A HEAD request is tried first; servers answering 405 get a GET.

    Returns:
        CheckStatus.OK for a final status below 400, CheckStatus.BROKEN otherwise
    """
    session = session or requests.Session()
    try:
        response = session.head(url, allow_redirects=True, timeout=timeout)
        if response.status_code == 405:
            response = session.get(url, allow_redirects=True, timeout=timeout, stream=True)
            response.close()
    except requests.RequestException as e:
        logger.debug(f"Health check failed for {url}: {e}")
        return CheckStatus.BROKEN

    return CheckStatus.OK if response.status_code < 400 else CheckStatus.BROKEN


@with_progress("Checking links")
def check_bookmarks(bookmarks: List[Bookmark],
                    max_workers: int = DEFAULT_MAX_WORKERS,
                    timeout: float = HEALTH_CHECK_TIMEOUT,
                    session: Optional[requests.Session] = None) -> List[Bookmark]:
    """
    Check the reachability of bookmarks concurrently.

    Args:
        bookmarks: Bookmarks to check
        max_workers: Number of concurrent checks
        timeout: Per-request timeout in seconds
        session: Shared requests session

    Returns:
        New bookmark records, in input order, with check fields updated
    """
    bookmarks = list(bookmarks)
    session = session or requests.Session()
    results = [None] * len(bookmarks)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(check_url, b.url, session, timeout): i
            for i, b in enumerate(bookmarks)
        }
        for future in as_completed(future_to_index):
            i = future_to_index[future]
            status = future.result()
            results[i] = bookmarks[i].copy(check_status=status, last_checked_at=now_ms())
            if status is CheckStatus.BROKEN:
                logger.warning(f"Bookmark not reachable: {bookmarks[i].url}")

    return results
