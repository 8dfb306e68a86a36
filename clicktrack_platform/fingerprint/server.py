"""
Server-side fingerprint signal.

Derived only from request metadata the server sees without client
cooperation: User-Agent, the resolved client address and the primary
Accept-Language entry. Accuracy is inherently limited (NAT and proxies
collapse many devices onto one address), which is why it is always
combined with the client signal before use.
"""

import hashlib
from dataclasses import dataclass
from typing import Mapping, Optional

from ..schemas import FingerprintComponents


@dataclass(frozen=True)
class ServerFingerprint:
    hash: str
    components: FingerprintComponents


def _first_csv_entry(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    first = value.split(",")[0].strip()
    return first or None


def get_client_ip(headers: Mapping[str, str]) -> Optional[str]:
    """
    Resolve the client address: first X-Forwarded-For hop, then X-Real-IP;
    None when neither proxy header is present.
    """
    return (
        _first_csv_entry(headers.get("x-forwarded-for"))
        or headers.get("x-real-ip")
        or None
    )


def get_referrer(headers: Mapping[str, str]) -> Optional[str]:
    return headers.get("referer") or None


def generate_server_fingerprint(headers: Mapping[str, str]) -> ServerFingerprint:
    """
    Hash the normalized "user_agent|ip|language" triple.

    Args:
        headers: Request headers. Starlette's Headers object is
            case-insensitive; plain dicts must use lowercase keys.

    Returns:
        ServerFingerprint: 64-hex hash plus the components it was built from.
    """
    user_agent = headers.get("user-agent") or "unknown"
    ip = get_client_ip(headers) or "unknown"
    # Accept-Language quality suffixes stay attached ("en-US;q=0.9"), as observed.
    language = (headers.get("accept-language") or "").split(",")[0] or "unknown"

    normalized = f"{user_agent}|{ip}|{language}"
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()

    return ServerFingerprint(
        hash=digest,
        components=FingerprintComponents(user_agent=user_agent, ip=ip, language=language),
    )
