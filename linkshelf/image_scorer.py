"""
Image candidate scoring.

Ranks candidate image URLs pulled from a page and picks the one most
likely to be the page's representative picture. The heuristics favour
uploaded photographs and penalize logos, icons, banners and thumbnails.
Weights live in :mod:`linkshelf.constants`.
"""
import re
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

from linkshelf.canonical import resolve_against
from linkshelf.constants import (
    EXTREME_ASPECT_RATIO,
    FAVICON_SERVICE,
    IMAGE_SCORE_WEIGHTS as W,
    MIN_EXTERNAL_IMAGE_SCORE,
    MIN_IMAGE_SCORE,
    PLATFORM_CDN_HOSTS,
    WIDE_ASPECT_RATIO,
)

logger = logging.getLogger(__name__)

IMAGE_EXT_RE = re.compile(r'\.(png|jpe?g|gif|webp|avif|svg)(\?|$)')
ICO_RE = re.compile(r'\.ico(\?|$)')
JPEG_RE = re.compile(r'\.jpe?g(\?|$)')
WEBP_AVIF_RE = re.compile(r'\.(webp|avif)(\?|$)')
PNG_RE = re.compile(r'\.png(\?|$)')
GIF_SVG_RE = re.compile(r'\.(gif|svg)(\?|$)')

SIZE_RE = re.compile(r'[-_](\d{2,4})x(\d{2,4})(?=\.(png|jpe?g|webp|avif|gif|svg)(\?|$))')
MAIN_IMAGE_RE = re.compile(r'(^|[/_-])img[_-]?main([._-]|$)')
FEATURED_RE = re.compile(r'(^|[/_-])(featured|hero|cover)([._-]|$)')
BANNER_RE = re.compile(r'(^|[/_-])(banner|header)([._-]|$)')
SQUARE_ICON_RE = re.compile(r'[-_](16|24|32|48|64|96|128|150|180|192|256)x\1(?=\.)')
AVATAR_SIZE_RE = re.compile(r'[-_](150|300)x(150|300)(?=\.)')
SRCSET_ENTRY_RE = re.compile(r'^(\S+)\s+(\d+)w$')

# "logo" also covers site-logo, custom-logo and header-logo
LOGOISH_MARKERS = ('logo', 'brand', 'icon', 'avatar', 'gravatar', 'sprite', 'favicon')
UPLOADS_DIR = '/wp-content/uploads/'
THEME_ASSET_DIRS = ('/wp-content/themes/', '/wp-content/plugins/')


@dataclass(frozen=True)
class SizeHint:
    """Pixel dimensions encoded in a filename such as ``photo-1200x800.jpg``."""
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height


def _strip_fragment(url: str) -> str:
    return url.split('#', 1)[0].lower()


def is_likely_image_url(candidate: Optional[str]) -> bool:
    """
    Check whether a URL plausibly points at a content image.

    ``data:image/`` and ``blob:`` URIs are accepted; favicons are rejected;
    anything else needs a known image extension.
    """
    if not candidate:
        return False
    lower = _strip_fragment(candidate)
    if lower.startswith(('data:image/', 'blob:')):
        return True
    if FAVICON_SERVICE in lower:
        return False
    if '/favicon' in lower or 'favicon=' in lower:
        return False
    if ICO_RE.search(lower):
        return False
    return bool(IMAGE_EXT_RE.search(lower))


def parse_size_hint(url: str) -> Optional[SizeHint]:
    """Read a ``-WxH`` / ``_WxH`` size suffix right before the image extension."""
    match = SIZE_RE.search(_strip_fragment(url))
    if not match:
        return None
    return SizeHint(int(match.group(1)), int(match.group(2)))


def parse_srcset_largest(srcset: Optional[str]) -> Optional[str]:
    """
    Pick the URL with the largest width descriptor from a ``srcset``.

    Entries without a ``<n>w`` descriptor are ignored.
    """
    if not srcset:
        return None

    best_url = None
    best_width = -1
    for part in srcset.split(','):
        match = SRCSET_ENTRY_RE.match(part.strip())
        if not match:
            continue
        width = int(match.group(2))
        if width > best_width:
            best_width = width
            best_url = match.group(1)

    return best_url


def _host(url: str) -> Optional[str]:
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    return host.lower() if host else None


def is_same_site(page_url: str, image_url: str) -> bool:
    """True when the image host is the page host or one of its subdomains."""
    page_host = _host(page_url)
    image_host = _host(image_url)
    if not page_host or not image_host:
        return False
    return image_host == page_host or image_host.endswith(f'.{page_host}')


def is_allowed_image_host(page_url: str, image_url: str) -> bool:
    """Same-site hosts plus the publishing platform's image CDN."""
    if is_same_site(page_url, image_url):
        return True
    return _host(image_url) in PLATFORM_CDN_HOSTS


def looks_logoish(url: str) -> bool:
    """Logo, icon, avatar and sprite naming, or a fixed icon size suffix."""
    lower = _strip_fragment(url)
    if any(marker in lower for marker in LOGOISH_MARKERS):
        return True
    return bool(SQUARE_ICON_RE.search(lower) or AVATAR_SIZE_RE.search(lower))


def _size_score(size: SizeHint) -> float:
    score = min(W['area_cap'], size.area / W['area_divisor'])
    if size.width >= 900 or size.height >= 600:
        score += W['large_bonus']

    ratio = size.width / size.height if size.height else 0
    if ratio >= EXTREME_ASPECT_RATIO or ratio <= 1 / EXTREME_ASPECT_RATIO:
        score += W['extreme_aspect']
    elif ratio >= WIDE_ASPECT_RATIO or ratio <= 1 / WIDE_ASPECT_RATIO:
        score += W['wide_aspect']

    if size.width < 500 or size.height < 300:
        score += W['thumbnail']
    elif size.width < 800:
        score += W['narrow']
    return score


def score_image_url(url: str) -> float:
    """
    Score an image URL; higher means more likely to be the main picture.

    Favicons score so low they can never be selected.
    """
    lower = _strip_fragment(url)
    score = 0.0

    if UPLOADS_DIR in lower:
        score += W['uploads_dir']
    if any(d in lower for d in THEME_ASSET_DIRS):
        score += W['theme_asset_dir']

    if JPEG_RE.search(lower):
        score += W['jpeg']
    elif WEBP_AVIF_RE.search(lower):
        score += W['webp_avif']
    elif PNG_RE.search(lower):
        score += W['png']
    elif GIF_SVG_RE.search(lower):
        score += W['gif_svg']

    if MAIN_IMAGE_RE.search(lower):
        score += W['main_image']
    if FEATURED_RE.search(lower):
        score += W['featured']
    if BANNER_RE.search(lower):
        score += W['banner']

    size = parse_size_hint(lower)
    if size:
        score += _size_score(size)
    else:
        score += W['no_size_hint']

    if looks_logoish(lower):
        score += W['logoish']
    if FAVICON_SERVICE in lower:
        score += W['favicon_service']
    if '/favicon' in lower or ICO_RE.search(lower):
        score += W['favicon_path']

    return score


def filter_candidates(page_url: str,
                      candidates: Iterable[str],
                      allow_external_hosts: bool = False) -> List[str]:
    """
    Resolve, deduplicate and filter candidates down to plausible images.

    Order of first occurrence is preserved.
    """
    seen = set()
    resolved = []
    for candidate in candidates:
        url = resolve_against(page_url, candidate)
        if url and url not in seen:
            seen.add(url)
            resolved.append(url)

    kept = []
    for url in resolved:
        if not is_likely_image_url(url):
            continue
        if url.startswith('http') and not allow_external_hosts \
                and not is_allowed_image_host(page_url, url):
            continue
        kept.append(url)
    return kept


def pick_best_image(page_url: str,
                    candidates: Iterable[str],
                    allow_external_hosts: bool = False) -> Optional[str]:
    """
    Pick the best image for a page from a list of candidate URLs.

    Args:
        page_url: URL of the page the candidates were found on
        candidates: Raw candidate URLs (relative or absolute)
        allow_external_hosts: Accept images on other hosts, subject to a
            stricter score threshold

    Returns:
        The winning absolute URL, or None when no candidate is convincing
    """
    filtered = filter_candidates(page_url, candidates, allow_external_hosts)
    if not filtered:
        return None

    best = filtered[0]
    best_score = score_image_url(best)
    for url in filtered[1:]:
        score = score_image_url(url)
        if score > best_score:
            best, best_score = url, score

    if best_score < MIN_IMAGE_SCORE:
        logger.debug(f"No confident image for {page_url} (best {best} scored {best_score})")
        return None

    if allow_external_hosts and best.startswith('http') and not is_same_site(page_url, best) \
            and best_score < MIN_EXTERNAL_IMAGE_SCORE:
        logger.debug(f"Rejecting external image {best} for {page_url} (score {best_score})")
        return None

    return best
