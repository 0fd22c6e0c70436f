"""
Constants for linkshelf.

Scraping heuristics are approximate, so every weight and threshold the
image scorer and resolver use is kept here. Tests pin these values.
"""

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 10
HEALTH_CHECK_TIMEOUT = 5

# Content proxies. ``{url}`` is replaced with the target URL.
HTML_PROXY_TEMPLATE = "https://api.allorigins.win/raw?url={url}"
MARKDOWN_PROXY_TEMPLATE = "https://r.jina.ai/{url}"

# Bodies shorter than this are treated as block/interstitial pages
MIN_HTML_LENGTH = 600

# Markers of a block page returned with a 200 status
BLOCK_PAGE_MARKERS = ("forbidden",)
BOT_CHECK_MARKERS = ("cf-browser-verification", "cloudflare")

# Placeholders
PLACEHOLDER_TITLE = "Saved link"
PLACEHOLDER_IMAGE = (
    "https://images.unsplash.com/photo-1618005182384-a83a8bd57fbe"
    "?q=80&w=1000&auto=format&fit=crop"
)
UNKNOWN_DOMAIN = "LINK"

# Limits
MAX_TITLE_LENGTH = 150
MAX_BODY_IMAGES = 40
MAX_RATING = 5

# URL canonicalization
DEFAULT_SCHEME = "https"
TRACKING_PARAMS = frozenset({"gclid", "fbclid", "igshid", "mc_cid", "mc_eid"})
TRACKING_PARAM_PREFIXES = ("utm_",)

# Image candidates
IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "avif", "svg")
FAVICON_SERVICE = "google.com/s2/favicons"
PLATFORM_CDN_HOSTS = frozenset({"i0.wp.com", "i1.wp.com", "i2.wp.com"})

IMAGE_META_NAMES = (
    "og:image",
    "og:image:url",
    "og:image:secure_url",
    "twitter:image",
    "image",
    "thumbnailUrl",
)
TITLE_META_NAMES = ("og:title", "twitter:title", "title")
LAZY_SRC_ATTRIBUTES = ("src", "data-src", "data-lazy-src", "data-original")

IMAGE_SCORE_WEIGHTS = {
    # Directory conventions
    "uploads_dir": 6,
    "theme_asset_dir": -4,
    # File types
    "jpeg": 6,
    "webp_avif": 5,
    "png": 2,
    "gif_svg": 1,
    # Filename hints
    "main_image": 10,
    "featured": 4,
    "banner": -6,
    # Size suffix (WxH)
    "area_divisor": 100000,
    "area_cap": 12,
    "large_bonus": 2,
    "extreme_aspect": -10,
    "wide_aspect": -6,
    "thumbnail": -6,
    "narrow": -2,
    "no_size_hint": -1,
    # Icons and favicons
    "logoish": -8,
    "favicon_service": -50,
    "favicon_path": -50,
}

# Aspect ratio bounds (width / height); the inverse bounds are inclusive too
EXTREME_ASPECT_RATIO = 4
WIDE_ASPECT_RATIO = 3

# Selection thresholds
MIN_IMAGE_SCORE = 2
MIN_EXTERNAL_IMAGE_SCORE = 6

# Merging
NOTES_SEPARATOR = "\n\n---\n\n"

# Batch processing
DEFAULT_MAX_WORKERS = 4

# Seconds between cancellation checks while a fetch is in flight
CANCEL_POLL_INTERVAL = 0.05
