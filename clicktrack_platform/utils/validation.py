"""
Input validation helpers for the tracking boundary.

Responsibilities:
    - Accept only public http/https target URLs (open-redirect and SSRF guard)
    - Validate and sanitize campaign ids
    - Percent-encode / decode target URLs carried in query strings

LLM Prompt Example:
    "Explain secure URL validation rules to prevent open redirect or
    javascript: scheme abuse, and list the private address ranges to block."
"""

import re
from urllib.parse import quote, unquote, urlparse

ALLOWED_SCHEMES = {"http", "https"}
BLOCKED_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
BLOCKED_PREFIXES = ("127.", "10.", "192.168.") + tuple(f"172.{n}." for n in range(16, 32))

CAMPAIGN_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,100}$")
_CAMPAIGN_ID_STRIP = re.compile(r"[^A-Za-z0-9_-]")

# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def is_valid_target_url(url) -> bool:
    """
    Return True iff `url` is an http(s) URL pointing at a public host.

    Rejected:
        - other schemes (javascript:, data:, ftp:, ...)
        - localhost, 0.0.0.0, ::1 and the 127/8, 10/8, 192.168/16, 172.16/12 ranges
        - hosts containing "local." or ending in ".local"
        - anything urlparse cannot make sense of
    """
    if not isinstance(url, str) or not url:
        return False
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        return False

    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not hostname:
        return False

    hostname = hostname.lower()
    if hostname in BLOCKED_HOSTS:
        return False
    if hostname.startswith(BLOCKED_PREFIXES):
        return False
    if "local." in hostname or hostname.endswith(".local"):
        return False
    return True


def is_valid_campaign_id(campaign_id) -> bool:
    """1 to 100 chars of [A-Za-z0-9_-]."""
    if not isinstance(campaign_id, str):
        return False
    return CAMPAIGN_ID_PATTERN.fullmatch(campaign_id) is not None


def sanitize_campaign_id(campaign_id: str) -> str:
    """Drop every character outside [A-Za-z0-9_-]."""
    return _CAMPAIGN_ID_STRIP.sub("", campaign_id or "")


def encode_url(url: str) -> str:
    """Percent-encode everything except unreserved characters."""
    return quote(url, safe=_URI_COMPONENT_SAFE)


def decode_url(encoded: str) -> str:
    """Decode a percent-encoded URL; return the input unchanged if it is not valid UTF-8."""
    try:
        return unquote(encoded, errors="strict")
    except UnicodeDecodeError:
        return encoded
