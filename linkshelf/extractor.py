"""
Metadata extraction for fetched pages.

Turns raw HTML (from the rendering proxy) or Markdown (from the text
extraction proxy) into a display title and a representative image.
Extraction never raises: unparsable content degrades to the placeholder
title and no image.
"""
import re
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from bs4 import BeautifulSoup

from linkshelf.canonical import absolutize
from linkshelf.constants import (
    IMAGE_META_NAMES,
    LAZY_SRC_ATTRIBUTES,
    MAX_BODY_IMAGES,
    MAX_TITLE_LENGTH,
    PLACEHOLDER_TITLE,
    TITLE_META_NAMES,
)
from linkshelf.image_scorer import is_likely_image_url, parse_srcset_largest, pick_best_image

logger = logging.getLogger(__name__)

MARKDOWN_TITLE_RE = re.compile(r'^Title:\s*(.*)$', re.MULTILINE)
MARKDOWN_IMAGE_RE = re.compile(r'!\[.*?\]\((https?://.*?)\)')
RAW_IMAGE_URL_RE = re.compile(r'(https?://.*?\.(?:png|jpg|jpeg|gif|webp|svg))', re.IGNORECASE)
TITLE_SEPARATORS = (' - ', ' | ')


class ContentFormat(str, Enum):
    """Format of a fetched body."""
    HTML = "html"
    MARKDOWN = "markdown"


@dataclass(frozen=True)
class MetadataResult:
    """Title and image resolved for a URL."""
    title: str
    image: Optional[str]
    url: str

    def to_dict(self) -> dict:
        return {'title': self.title, 'image': self.image, 'url': self.url}


def cap_title(title: str, limit: int = MAX_TITLE_LENGTH) -> str:
    """Truncate long titles with an ellipsis so the result is at most ``limit`` chars."""
    if len(title) > limit:
        return title[:limit - 3] + '...'
    return title


def clean_title(title: str) -> str:
    """Keep the part of a title before the first ``" - "``, then before the first ``" | "``."""
    for separator in TITLE_SEPARATORS:
        title = title.split(separator, 1)[0]
    return title.strip()


def _decode(content: Union[bytes, str]) -> str:
    if isinstance(content, bytes):
        return content.decode('utf-8', errors='replace')
    return content or ''


def _meta_contents(soup: BeautifulSoup, names) -> List[str]:
    """Non-empty meta ``content`` values matching the names via property, name or itemprop, in order."""
    contents = []
    for name in names:
        for attr in ('property', 'name', 'itemprop'):
            for tag in soup.find_all('meta', attrs={attr: name}):
                content = (tag.get('content') or '').strip()
                if content and content not in contents:
                    contents.append(content)
    return contents


def _meta_content(soup: BeautifulSoup, names) -> Optional[str]:
    contents = _meta_contents(soup, names)
    return contents[0] if contents else None


def _body_image_candidates(soup: BeautifulSoup) -> List[str]:
    candidates = []
    for img in soup.find_all('img', limit=MAX_BODY_IMAGES):
        src = next((img.get(attr) for attr in LAZY_SRC_ATTRIBUTES if img.get(attr)), None)
        largest = parse_srcset_largest(img.get('srcset'))
        if src:
            candidates.append(src)
        if largest:
            candidates.append(largest)
    return candidates


def extract_markdown(text: str, source_url: str):
    """Title and image from the text extraction proxy's Markdown output."""
    match = MARKDOWN_TITLE_RE.search(text)
    title = match.group(1).strip() if match else ''

    candidates = MARKDOWN_IMAGE_RE.findall(text)
    if not candidates:
        raw = RAW_IMAGE_URL_RE.search(text)
        candidates = [raw.group(1)] if raw else []

    image = pick_best_image(source_url, candidates) if candidates else None
    return title, image


def extract_html(html: str, source_url: str):
    """Title and image from rendered HTML using meta tags, then body images."""
    soup = BeautifulSoup(html, 'html.parser')

    title = _meta_content(soup, TITLE_META_NAMES)
    if not title and soup.title is not None:
        title = soup.title.get_text()
    title = clean_title(title or '')

    meta_images = _meta_contents(soup, IMAGE_META_NAMES)
    image = None
    if meta_images:
        # Publishers often serve their og:image from a CDN host
        image = pick_best_image(source_url, meta_images, allow_external_hosts=True)
    if not image:
        image = pick_best_image(source_url, _body_image_candidates(soup))
    return title, image


def finalize_image(image: Optional[str], source_url: str) -> Optional[str]:
    """Make the chosen image absolute and re-check it; drop it if it fails."""
    if not image:
        return None
    resolved = absolutize(source_url, image)
    if not resolved or not is_likely_image_url(resolved):
        logger.debug(f"Discarding image {image} for {source_url}")
        return None
    return resolved


def extract(content: Union[bytes, str],
            source_url: str,
            format: Union[ContentFormat, str] = ContentFormat.HTML,
            placeholder_title: str = PLACEHOLDER_TITLE) -> MetadataResult:
    """
    Extract title and image from fetched content.

    Args:
        content: Raw body, bytes are decoded as UTF-8
        source_url: URL the content was fetched for
        format: ``html`` or ``markdown``
        placeholder_title: Title used when none can be found

    Returns:
        MetadataResult; never raises
    """
    title, image = '', None
    try:
        text = _decode(content)
        if ContentFormat(format) is ContentFormat.MARKDOWN:
            title, image = extract_markdown(text, source_url)
        else:
            title, image = extract_html(text, source_url)
        image = finalize_image(image, source_url)
    except Exception as e:
        logger.debug(f"Metadata extraction failed for {source_url}: {e}")
        title, image = '', None

    return MetadataResult(
        title=cap_title(title or placeholder_title),
        image=image,
        url=source_url,
    )
