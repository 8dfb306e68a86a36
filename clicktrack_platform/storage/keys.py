"""
Dedup key builder.

One click record exists per (device, campaign, target) triple. The key is
"{fingerprint}_{campaign_id}_{url_digest}" where url_digest is the first
8 hex chars of MD5(target_url). MD5 is used for compactness only; the
fingerprint and campaign id carry the uniqueness.
"""

import hashlib

URL_DIGEST_LENGTH = 8


def url_digest(target_url: str) -> str:
    """Return the 8-char lowercase hex MD5 prefix of `target_url`."""
    return hashlib.md5(target_url.encode("utf-8")).hexdigest()[:URL_DIGEST_LENGTH]


def build_key(fingerprint: str, campaign_id: str, target_url: str) -> str:
    """
    Build the dedup key for a click.

    Args:
        fingerprint (str): Validated 64-hex device fingerprint.
        campaign_id (str): Validated campaign id ([A-Za-z0-9_-]).
        target_url (str): Destination URL of the click.

    Returns:
        str: Stable key, e.g. "ab12..ef_instagram-bio_1a2b3c4d".
    """
    return f"{fingerprint}_{campaign_id}_{url_digest(target_url)}"
