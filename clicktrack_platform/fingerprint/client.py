"""
Client-side fingerprint signal.

The rich probe runs in the requester's own runtime and is opaque to this
package: it is passed in as a zero-argument callable returning a hash.
When the probe fails, a smaller fallback feature set is encoded instead so
the tracking event still carries a usable (if weaker) client signal.

LLM Prompt Example:
    "Show how to degrade gracefully from a rich browser fingerprint to a
    deterministic fallback without ever raising into the redirect path."
"""

import base64
import hashlib
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

log = logging.getLogger("clicktrack.fingerprint")

SERVER_SIDE_RENDER = "server-side-render"
FALLBACK_LENGTH = 32
COMBINED_FALLBACK_LENGTH = 64

ClientProbe = Callable[[], str]


@dataclass(frozen=True)
class ClientFeatures:
    """Fallback feature set collected in the client runtime."""
    user_agent: str
    language: str
    screen_width: int
    screen_height: int
    color_depth: int
    timezone_offset: int
    hardware_concurrency: Optional[int] = None
    max_touch_points: Optional[int] = None


def _b64_truncated(text: str, length: int) -> str:
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return encoded.replace("=", "")[:length]


def generate_fallback_fingerprint(features: Optional[ClientFeatures]) -> str:
    """
    Deterministic fallback: join the features with "|", base64-encode,
    strip padding and keep the first 32 chars.

    Returns "server-side-render" when no client runtime was available.
    """
    if features is None:
        return SERVER_SIDE_RENDER

    cores: Union[int, str] = features.hardware_concurrency or "unknown"
    touch_points = features.max_touch_points or 0
    components = "|".join(
        str(part)
        for part in (
            features.user_agent,
            features.language,
            features.screen_width,
            features.screen_height,
            features.color_depth,
            features.timezone_offset,
            cores,
            touch_points,
        )
    )
    return _b64_truncated(components, FALLBACK_LENGTH)


def generate_client_fingerprint(
    probe: Optional[ClientProbe],
    features: Optional[ClientFeatures] = None,
) -> str:
    """
    Run the rich probe; fall back to the feature-set encoding on any failure.

    Never raises: probe errors are logged and replaced by the fallback value.
    """
    if probe is not None:
        try:
            value = probe()
            if value:
                return value
            log.warning("Client probe returned an empty hash, using fallback")
        except Exception as exc:
            log.warning("Client probe failed, using fallback: %s", exc)
    return generate_fallback_fingerprint(features)


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def combine_client_fingerprints(
    server_hash: str,
    client_hash: str,
    hasher: Callable[[bytes], str] = _sha256_hex,
) -> str:
    """
    Client-runtime combination of both signals.

    Produces the same value as hybrid.combine_fingerprints. If the runtime
    cannot hash, returns base64("server:client") truncated to 64 chars; that
    value is not a valid fingerprint and is rejected at the tracking gate.
    """
    combined = f"{server_hash}:{client_hash}"
    try:
        return hasher(combined.encode("utf-8"))
    except (ValueError, TypeError, RuntimeError) as exc:
        log.warning("Hashing unavailable in client runtime, using fallback: %s", exc)
        return _b64_truncated(combined, COMBINED_FALLBACK_LENGTH)
