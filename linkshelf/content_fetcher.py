"""
Metadata resolution through best-effort content proxies.

A rendering proxy is tried first for full HTML. When it fails or returns
what looks like a block page, a text extraction proxy is tried for a
Markdown rendition. Whatever comes back is handed to the extractor.
Resolution never raises; the worst case is a placeholder result.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import quote

import requests

from linkshelf.config import LinkshelfConfig, get_config
from linkshelf.constants import BLOCK_PAGE_MARKERS, BOT_CHECK_MARKERS, CANCEL_POLL_INTERVAL
from linkshelf.extractor import ContentFormat, MetadataResult, extract

logger = logging.getLogger(__name__)


@dataclass
class FetchResponse:
    """Result of a transport call; network failures have ``ok=False``."""
    ok: bool
    status: int = 0
    body: bytes = b""
    error: Optional[str] = None


Transport = Callable[[str], FetchResponse]


class ContentFetcher:
    """Fetch raw bodies over HTTP with a bounded timeout."""

    def __init__(self, timeout: int = 10, user_agent: Optional[str] = None):
        """
        Initialize the content fetcher.

        Args:
            timeout: Request timeout in seconds
            user_agent: Custom user agent string
        """
        self.timeout = timeout
        self.user_agent = user_agent or "Mozilla/5.0 (compatible; linkshelf/0.1)"
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": self.user_agent})

    def fetch(self, url: str) -> FetchResponse:
        """
        Fetch a URL.

        Args:
            url: The URL to fetch

        Returns:
            FetchResponse; ``ok`` is True only for 2xx responses
        """
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        except requests.Timeout:
            return FetchResponse(ok=False, error="Request timeout")
        except requests.ConnectionError:
            return FetchResponse(ok=False, error="Connection error")
        except requests.RequestException as e:
            return FetchResponse(ok=False, error=str(e))

        ok = 200 <= response.status_code < 300
        return FetchResponse(
            ok=ok,
            status=response.status_code,
            body=response.content if ok else b"",
            error=None if ok else f"HTTP {response.status_code}",
        )

    __call__ = fetch

    def close(self):
        self.session.close()


def ensure_target_url(url: str) -> str:
    """Prefix ``https://`` unless the URL already starts with ``http``."""
    url = url.strip()
    return url if url.startswith("http") else f"https://{url}"


def _decode(body) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body or ""


def looks_blocked(body: str, min_length: int) -> bool:
    """Heuristics for block, bot-check and interstitial pages served with a 200."""
    lowered = body.lower()
    if any(marker in lowered for marker in BLOCK_PAGE_MARKERS):
        return True
    if any(marker in body for marker in BOT_CHECK_MARKERS):
        return True
    return len(body) < min_length


class MetadataResolver:
    """Resolve a URL to a :class:`MetadataResult` via the two content proxies."""

    def __init__(self, fetch: Optional[Transport] = None,
                 config: Optional[LinkshelfConfig] = None):
        self.config = config or get_config()
        self.fetch = fetch or ContentFetcher(
            timeout=self.config.timeout, user_agent=self.config.user_agent
        )

    def _fetch_abortable(self, proxy_url: str, cancelled: Callable[[], bool]) -> Optional[FetchResponse]:
        """
        Run the transport on its own thread and stop waiting once ``cancelled`` fires.

        An abandoned transport call finishes in the background, bounded by
        its own timeout, without holding the caller's worker.
        """
        done = threading.Event()
        outcome = {}

        def run():
            try:
                outcome["response"] = self.fetch(proxy_url)
            except Exception as e:
                outcome["error"] = e
            finally:
                done.set()

        threading.Thread(target=run, name="linkshelf-fetch", daemon=True).start()
        while not done.wait(CANCEL_POLL_INTERVAL):
            if cancelled():
                logger.debug(f"Abandoning superseded fetch of {proxy_url}")
                return None
        if "error" in outcome:
            raise outcome["error"]
        return outcome["response"]

    def _call(self, proxy_url: str,
              cancelled: Optional[Callable[[], bool]] = None) -> Optional[FetchResponse]:
        try:
            if cancelled is None:
                response = self.fetch(proxy_url)
            else:
                response = self._fetch_abortable(proxy_url, cancelled)
        except Exception as e:
            logger.warning(f"Transport error for {proxy_url}: {e}")
            return None
        if response is None:
            return None
        if not response.ok:
            logger.warning(f"Proxy request failed for {proxy_url}: "
                           f"{response.error or f'HTTP {response.status}'}")
            return None
        return response

    def fetch_html(self, target: str, cancelled: Optional[Callable[[], bool]] = None) -> Optional[str]:
        """Attempt 1: rendered HTML through the rendering proxy."""
        proxy_url = self.config.html_proxy.format(url=quote(target, safe=""))
        response = self._call(proxy_url, cancelled)
        if response is None:
            return None
        body = _decode(response.body)
        if looks_blocked(body, self.config.min_html_length):
            logger.debug(f"Discarding blocked or short HTML body for {target} ({len(body)} chars)")
            return None
        return body

    def fetch_markdown(self, target: str, cancelled: Optional[Callable[[], bool]] = None) -> Optional[str]:
        """Attempt 2: Markdown through the text extraction proxy."""
        proxy_url = self.config.markdown_proxy.format(url=target)
        response = self._call(proxy_url, cancelled)
        if response is None:
            return None
        return _decode(response.body) or None

    def placeholder(self, target: str) -> MetadataResult:
        return MetadataResult(title=self.config.placeholder_title, image=None, url=target)

    def resolve(self, url: str,
                cancelled: Optional[Callable[[], bool]] = None) -> Optional[MetadataResult]:
        """
        Resolve title and image for a URL.

        Args:
            url: Bookmark URL, scheme optional
            cancelled: Checked between steps and while a fetch is in
                flight; when it returns True the resolution is abandoned

        Returns:
            MetadataResult, or None only if ``cancelled`` fired
        """
        abort = cancelled
        cancelled = cancelled or (lambda: False)
        target = ensure_target_url(url)

        if cancelled():
            return None
        body = self.fetch_html(target, abort)
        content_format = ContentFormat.HTML

        if body is None:
            if cancelled():
                return None
            body = self.fetch_markdown(target, abort)
            content_format = ContentFormat.MARKDOWN

        if cancelled():
            return None
        if body is None:
            logger.info(f"No content for {target}, using placeholder")
            return self.placeholder(target)

        return extract(body, target, content_format,
                       placeholder_title=self.config.placeholder_title)


class ResolutionSlot:
    """
    Run resolutions in the background where each submission supersedes the last.

    Meant for one logical caller, e.g. a field the user is typing a URL
    into: a new URL abandons the previous resolution, including a fetch
    still waiting on the network, instead of queueing behind it. An abandoned future is either cancelled
    before it starts or completes with None.
    """

    def __init__(self, resolver: MetadataResolver, max_workers: int = 4):
        self.resolver = resolver
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="linkshelf-resolve")
        self._lock = threading.Lock()
        self._generation = 0
        self._current: Optional[Future] = None

    def submit(self, url: str) -> Future:
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._current is not None:
                self._current.cancel()

            def is_stale() -> bool:
                return self._generation != generation

            self._current = self._executor.submit(self.resolver.resolve, url, is_stale)
            return self._current

    def latest(self) -> Optional[Future]:
        return self._current

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)


def create_resolver(**kwargs) -> MetadataResolver:
    """Create a MetadataResolver with optional transport and configuration."""
    return MetadataResolver(**kwargs)
