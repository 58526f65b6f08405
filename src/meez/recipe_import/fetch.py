"""Fetch recipe pages over HTTP."""

import logging
import re
from urllib.parse import urlparse

import httpx

from .models import FetchMethod, FetchResult

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_MESSAGE = (
    "Copy the recipe text from the website and paste it in instead. "
    "It can be parsed the same way."
)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


def validate_url(url: str) -> str | None:
    """
    Validate URL format.

    Returns error message if invalid, None if valid.
    """
    if not url or not url.strip():
        return "URL is required"

    url = url.strip()

    if not re.match(r"^https?://", url, re.IGNORECASE):
        return "URL must start with http:// or https://"

    parsed = urlparse(url)
    if not parsed.netloc:
        return "Invalid URL format"

    return None


async def fetch_html(url: str, timeout: float = 15.0) -> FetchResult:
    """
    Fetch a page with browser-like headers.

    Never raises: network and HTTP failures come back as a failed
    FetchResult with a user-facing error.
    """
    validation_error = validate_url(url)
    if validation_error:
        return FetchResult(success=False, method=FetchMethod.FAILED, error=validation_error)

    try:
        async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as client:
            response = await client.get(url, headers=BROWSER_HEADERS)
            response.raise_for_status()
            html = response.text
            final_url = str(response.url)

    except httpx.TimeoutException:
        return FetchResult(
            success=False,
            method=FetchMethod.FAILED,
            error="Request timed out. Please try again.",
            fallback_message="The website took too long to respond. " + DEFAULT_FALLBACK_MESSAGE,
        )
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        if status == 403:
            return FetchResult(
                success=False,
                method=FetchMethod.FAILED,
                error="This website blocked our request",
                fallback_message="This site blocks automated access. " + DEFAULT_FALLBACK_MESSAGE,
            )
        if status == 404:
            return FetchResult(success=False, method=FetchMethod.FAILED, error="Recipe page not found")
        return FetchResult(
            success=False,
            method=FetchMethod.FAILED,
            error=f"Failed to fetch page: HTTP {status}",
        )
    except httpx.HTTPError as e:
        logger.warning(f"Fetch failed for {url}: {e}")
        return FetchResult(success=False, method=FetchMethod.FAILED, error="Could not reach this website")

    if _is_login_page(html):
        return FetchResult(
            success=False,
            method=FetchMethod.FAILED,
            error="This recipe requires login to view",
            fallback_message="This recipe is behind a login wall. " + DEFAULT_FALLBACK_MESSAGE,
        )

    logger.info(f"Fetched {len(html)} chars from {final_url}")
    return FetchResult(success=True, method=FetchMethod.DIRECT, html=html, final_url=final_url)


def _is_login_page(html: str) -> bool:
    """Detect if the page is a login/paywall page."""
    login_indicators = [
        "sign in to continue",
        "log in to view",
        "subscribe to read",
        "subscription required",
        "please log in",
        "members only",
    ]
    html_lower = html.lower()
    return any(indicator in html_lower for indicator in login_indicators)
