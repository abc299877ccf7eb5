from typing import Optional
from urllib.parse import urljoin, urlsplit

from campaign_tracker.core.patterns import scrub_pii

# relative paths are resolved against this before the path is extracted
PLACEHOLDER_BASE = "https://example.com"

MAX_PAGE_PATH = 500
MAX_ELEMENT_TEXT = 200


def sanitize_page_path(path: Optional[str]) -> Optional[str]:
    """
    Keep only the path component; query string and fragment are dropped.
    """
    if not path:
        return None
    try:
        parts = urlsplit(urljoin(PLACEHOLDER_BASE, path))
    except ValueError:
        # e.g. an unbalanced IPv6 bracket in the netloc
        return path.split("?", 1)[0].split("#", 1)[0][:MAX_PAGE_PATH]
    return (parts.path or "/")[:MAX_PAGE_PATH]


def sanitize_element_text(text: Optional[str]) -> Optional[str]:
    """
    Mask email addresses and North-American phone numbers, then truncate.

    Pattern based and therefore best effort: names, addresses, card numbers
    or international phone formats pass through untouched.
    """
    if not text:
        return None
    return scrub_pii(text)[:MAX_ELEMENT_TEXT]
