import re

# --- PII scrubbing (best effort, not exhaustive) ---
# ASCII classes so that \w and \d match what the tracking snippet sends,
# not arbitrary unicode letters/digits.
EMAIL_RE = re.compile(r"[\w.-]+@[\w.-]+\.\w+", re.ASCII)
PHONE_RE = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b", re.ASCII)

EMAIL_PLACEHOLDER = "[email]"
PHONE_PLACEHOLDER = "[phone]"

# --- Campaign builder field grammar ---
UTM_VALUE_PATTERN = r"^[a-zA-Z0-9_-]+$"
DOMAIN_PATTERN = (
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

# --- Referrer heuristics used by the dashboard ---
ORGANIC_HINTS = ("google", "bing")
PAID_HINTS = ("utm_", "ads", "campaign")
SOURCE_HINTS = ("google", "facebook", "twitter")
SEARCH_PARAMS = ("q", "s")


def scrub_pii(text: str) -> str:
    text = EMAIL_RE.sub(EMAIL_PLACEHOLDER, text)
    return PHONE_RE.sub(PHONE_PLACEHOLDER, text)
