"""
meez - Input classification and cache keys.

Classifies caller input (URL, pasted text, image, video, invalid) and
derives the cache key: a normalized URL for links, a content hash for text.
"""

import hashlib
import logging
import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from meez.models import InputType, RawInput

logger = logging.getLogger(__name__)

MIN_INPUT_CHARS = 3
MIN_LETTER_RATIO = 0.65

VIDEO_HOST_PATTERNS = (
    re.compile(r"^(www\.)?(youtube\.com|youtu\.be)$", re.IGNORECASE),
    re.compile(r"^(www\.)?instagram\.com$", re.IGNORECASE),
    re.compile(r"^(www\.)?tiktok\.com$", re.IGNORECASE),
)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".heic")

TRACKING_PARAMS = frozenset(
    [
        # UTM
        "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
        # Facebook
        "fbclid", "fb_action_ids", "fb_action_types", "fb_ref", "fb_source",
        # Google
        "gclid", "gclsrc", "dclid", "gbraid", "wbraid",
        # General
        "ref", "referrer", "source", "campaign", "medium",
        # Social
        "igshid", "twclid", "li_fat_id",
        # Analytics
        "_ga", "_gl", "_ke", "mc_cid", "mc_eid",
        # Affiliate
        "aff_id", "affiliate_id", "aff", "tag",
        # Email
        "email_id", "email_campaign", "email_source",
        # Other
        "pk_campaign", "pk_kwd", "pk_medium", "pk_source",
        "hsCtaTracking", "hsa_acc", "hsa_cam", "hsa_grp", "hsa_ad", "hsa_src",
        "hsa_tgt", "hsa_kw", "hsa_mt", "hsa_net", "hsa_ver",
    ]
)

_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


def ensure_scheme(text: str) -> str:
    """Prefix https:// onto schemeless and protocol-relative links."""
    if text.startswith("//"):
        return "https:" + text
    if not _SCHEME_PATTERN.match(text):
        return "https://" + text
    return text


def _looks_like_domain(host: str) -> bool:
    """example.com yes; localhost, a..b, 12.5 no."""
    labels = host.split(".")
    if len(labels) < 2 or not all(labels):
        return False
    tld = labels[-1]
    return len(tld) >= 2 and tld.isalpha()


def _letter_ratio(text: str) -> float:
    letters = sum(1 for c in text if c.isascii() and c.isalpha())
    return letters / len(text)


def detect_input_type(text: str) -> InputType:
    """
    Classify raw caller input.

    Examples:
        "https://www.example.com/pancakes" -> URL
        "youtube.com/watch?v=abc"          -> VIDEO
        "lasagna"                          -> RAW_TEXT
        "12345"                            -> INVALID
    """
    trimmed = (text or "").strip()

    if len(trimmed) < MIN_INPUT_CHARS:
        return InputType.INVALID

    if trimmed.lower().startswith("data:image/"):
        return InputType.IMAGE

    if not any(c.isspace() for c in trimmed):
        try:
            parts = urlsplit(ensure_scheme(trimmed))
            host = parts.hostname or ""
        except ValueError:
            host = ""

        if host and _looks_like_domain(host):
            if any(p.match(host) for p in VIDEO_HOST_PATTERNS):
                return InputType.VIDEO
            if parts.path.lower().endswith(IMAGE_EXTENSIONS):
                return InputType.IMAGE
            return InputType.URL

    if _letter_ratio(trimmed) < MIN_LETTER_RATIO:
        return InputType.INVALID

    return InputType.RAW_TEXT


def classify(text: str) -> RawInput:
    """Trim and classify in one step."""
    trimmed = (text or "").strip()
    detected = detect_input_type(trimmed)
    logger.debug(f"Classified input as {detected.value} ({len(trimmed)} chars)")
    return RawInput(text=trimmed, detected_type=detected)


def normalize_url(url: str) -> str:
    """
    Normalize a URL so links to the same page share one cache key.

    Lowercases scheme and host, drops "www.", default ports, the fragment,
    tracking parameters and a trailing slash, and sorts the query.

    Examples:
        "HTTPS://WWW.Example.com:443/Recipe/?utm_source=x&b=2&a=1#top"
            -> "https://example.com/Recipe?a=1&b=2"

    Raises:
        ValueError: empty input
    """
    if not url or not url.strip():
        raise ValueError("URL must be a non-empty string")

    parts = urlsplit(ensure_scheme(url.strip()))
    scheme = parts.scheme.lower()

    host = (parts.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]

    try:
        port = parts.port
    except ValueError:
        port = None
    if port and not ((scheme == "https" and port == 443) or (scheme == "http" and port == 80)):
        host = f"{host}:{port}"

    path = parts.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]

    params = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k not in TRACKING_PARAMS
    ]
    params.sort(key=lambda kv: kv[0])

    return urlunsplit((scheme, host, path, urlencode(params), ""))


def content_hash(text: str) -> str:
    """sha256 hex digest of the trimmed text; the cache key for pasted recipes."""
    return hashlib.sha256(text.strip().encode("utf-8")).hexdigest()


def cache_key_for(raw: RawInput) -> str:
    if raw.detected_type in (InputType.URL, InputType.VIDEO):
        return normalize_url(raw.text)
    return content_hash(raw.text)
