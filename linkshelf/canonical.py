"""
URL canonicalization and dedup keys.

Turns raw user input into a comparable URL, derives the key used to
detect duplicate bookmarks, and validates URLs on the add path.
Every function here is total: malformed input yields a defined result.
"""
import re
import logging
from typing import NamedTuple, Optional
from urllib.parse import urlsplit, urlunsplit, urljoin, parse_qsl, urlencode

from linkshelf.constants import (
    DEFAULT_SCHEME,
    TRACKING_PARAMS,
    TRACKING_PARAM_PREFIXES,
    UNKNOWN_DOMAIN,
)
from linkshelf.exceptions import InvalidURLError

logger = logging.getLogger(__name__)

SCHEME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*://')
# "http:/host", "https:host" style typos
SINGLE_SLASH_RE = re.compile(r'^htt[p]?s?:/?([^/])', re.IGNORECASE)
# "http:///host", "https:////host"
EXTRA_SLASH_RE = re.compile(r'^htt[p]?s?://+', re.IGNORECASE)
HOST_RE = re.compile(r'^[\w.\-\[\]:%]+$')

DEFAULT_PORTS = {'http': 80, 'https': 443}


class ValidationResult(NamedTuple):
    """Outcome of :func:`validate_url`: exactly one of the fields is set."""
    error: Optional[str]
    normalized: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def fix_protocol_typos(text: str) -> str:
    """Rewrite malformed ``http``/``https`` prefixes to a single ``https://``."""
    text = SINGLE_SLASH_RE.sub(f'{DEFAULT_SCHEME}://\\1', text, count=1)
    return EXTRA_SLASH_RE.sub(f'{DEFAULT_SCHEME}://', text, count=1)


def with_scheme(raw: str) -> str:
    """Trim input, repair protocol typos and add the default scheme if missing."""
    text = fix_protocol_typos(raw.strip())
    if not SCHEME_RE.match(text):
        text = f'{DEFAULT_SCHEME}://{text}'
    return text


def _normalize_netloc(parts) -> str:
    userinfo, sep, _ = parts.netloc.rpartition('@')
    host = parts.hostname or ''
    if ':' in host:
        host = f'[{host}]'
    port = parts.port
    if port is not None and DEFAULT_PORTS.get(parts.scheme.lower()) != port:
        host = f'{host}:{port}'
    return f'{userinfo}{sep}{host}'


def canonicalize(raw: str) -> str:
    """
    Normalize a raw URL string into a fully-qualified URL.

    Adds ``https://`` when no scheme is present, repairs common protocol
    typos, lowercases the scheme and host, drops default ports and gives
    a bare host the root path.

    Args:
        raw: User supplied URL text

    Returns:
        Canonical URL, or the trimmed input when it cannot be parsed
    """
    if not isinstance(raw, str):
        return ''
    text = with_scheme(raw)
    try:
        parts = urlsplit(text)
        if not parts.hostname:
            return raw.strip()
        netloc = _normalize_netloc(parts)
    except ValueError:
        return raw.strip()

    path = parts.path or '/'
    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, parts.fragment))


def is_tracking_param(name: str) -> bool:
    """Check whether a query parameter name is a known tracking parameter."""
    lowered = name.lower()
    return lowered in TRACKING_PARAMS or lowered.startswith(TRACKING_PARAM_PREFIXES)


def dedup_key(url: str) -> str:
    """
    Compute the key under which duplicate bookmarks collide.

    The key is ``hostname + path + query`` with the fragment removed,
    tracking parameters stripped, the remaining parameters sorted, and
    trailing slashes on the path collapsed (the root stays ``/``).

    Args:
        url: Bookmark URL (scheme optional)

    Returns:
        Dedup key; unparsable input falls back to its trimmed, lowercased text
    """
    if not isinstance(url, str):
        return ''
    try:
        parts = urlsplit(canonicalize(url))
        host = parts.hostname
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        host = None
    if not host:
        return url.strip().lower()

    params = [
        (name, value)
        for name, value in parse_qsl(parts.query, keep_blank_values=True)
        if not is_tracking_param(name)
    ]
    query = urlencode(sorted(params))
    path = parts.path.rstrip('/') or '/'

    return f'{host}{path}?{query}' if query else f'{host}{path}'


def validate_url(raw: str) -> ValidationResult:
    """
    Validate a URL typed by the user and return its canonical form.

    Args:
        raw: User supplied URL text

    Returns:
        ValidationResult with either a human-readable error or the
        normalized URL
    """
    trimmed = raw.strip() if isinstance(raw, str) else ''
    if not trimmed:
        return ValidationResult('Please enter a web address.')

    if re.search(r'\s', trimmed):
        return ValidationResult('The URL cannot contain whitespace.')

    remainder = SCHEME_RE.sub('', fix_protocol_typos(trimmed), count=1)
    if '.' not in remainder:
        return ValidationResult('The domain extension seems to be missing (e.g. .com, .org, .net).')

    text = with_scheme(trimmed)
    try:
        parts = urlsplit(text)
        hostname = parts.hostname or ''
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return ValidationResult('The link structure is invalid. Check for unusual characters.')

    if not HOST_RE.match(hostname or '-'):
        return ValidationResult('The link structure is invalid. Check for unusual characters.')

    if len(hostname) < 3 or '.' not in hostname or hostname.startswith('.') or '..' in hostname:
        return ValidationResult('The domain name looks incomplete.')

    return ValidationResult(None, canonicalize(text))


def ensure_valid_url(raw: str) -> str:
    """
    Validate a URL, raising on rejection.

    Raises:
        InvalidURLError: If the URL fails validation
    """
    result = validate_url(raw)
    if result.error:
        raise InvalidURLError(raw, result.error)
    return result.normalized


def extract_domain(url: str) -> str:
    """
    Derive the display label for a URL: the second-level host label, uppercased.

    >>> extract_domain('https://www.blog.example.co/post')
    'EXAMPLE'
    """
    if not isinstance(url, str) or not url.strip():
        return UNKNOWN_DOMAIN
    try:
        host = urlsplit(with_scheme(url)).hostname
    except ValueError:
        return UNKNOWN_DOMAIN
    if not host:
        return UNKNOWN_DOMAIN

    if host.startswith('www.'):
        host = host[4:]
    labels = host.split('.')
    label = labels[-2] if len(labels) > 1 else labels[0]
    return label.upper() or UNKNOWN_DOMAIN


def resolve_against(base: str, candidate: str) -> str:
    """
    Resolve a possibly relative URL against a page URL.

    Handles protocol-relative, root-relative, relative and absolute
    candidates. ``data:image/`` and ``blob:`` URIs pass through untouched.
    """
    raw = (candidate or '').strip()
    if not raw:
        return ''
    if raw.lower().startswith(('data:image/', 'blob:')):
        return raw
    try:
        return urljoin(base, raw)
    except ValueError:
        return raw


def absolutize(base: str, candidate: str) -> Optional[str]:
    """
    Compose a non-absolute URL with the origin of ``base``.

    ``//host/x`` takes the base scheme, ``/x`` the base origin, and any
    other relative form is appended to the origin. Absolute ``http(s)``,
    ``data:`` and ``blob:`` URLs are returned unchanged.

    Returns:
        The absolute URL, or None when ``base`` has no usable origin
    """
    if candidate.lower().startswith(('http', 'data:', 'blob:')):
        return candidate
    try:
        parts = urlsplit(base)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None

    if candidate.startswith('//'):
        return f'{parts.scheme}:{candidate}'
    if candidate.startswith('/'):
        return f'{parts.scheme}://{parts.netloc}{candidate}'
    return f'{parts.scheme}://{parts.netloc}/{candidate}'
