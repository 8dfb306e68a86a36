"""
Unit tests for the client-side signal and its fallbacks.

LLM Prompt Example:
    "Show how to test a never-raising fallback path by injecting a failing probe."
"""

import base64
import hashlib

from clicktrack_platform.fingerprint.client import (
    ClientFeatures,
    combine_client_fingerprints,
    generate_client_fingerprint,
    generate_fallback_fingerprint,
)
from clicktrack_platform.fingerprint.hybrid import combine_fingerprints, is_valid_fingerprint

FEATURES = ClientFeatures(
    user_agent="Mozilla/5.0 Test",
    language="en-US",
    screen_width=1920,
    screen_height=1080,
    color_depth=24,
    timezone_offset=-60,
    hardware_concurrency=8,
    max_touch_points=0,
)


def _expected_fallback(raw: str, length: int) -> str:
    return base64.b64encode(raw.encode("utf-8")).decode("ascii").replace("=", "")[:length]


def test_probe_value_is_returned_when_probe_succeeds():
    assert generate_client_fingerprint(lambda: "visitor-abc", FEATURES) == "visitor-abc"


def test_failing_probe_degrades_to_fallback():
    def broken_probe():
        raise RuntimeError("canvas blocked")

    value = generate_client_fingerprint(broken_probe, FEATURES)
    assert value == generate_fallback_fingerprint(FEATURES)
    assert len(value) == 32


def test_empty_probe_result_degrades_to_fallback():
    assert generate_client_fingerprint(lambda: "", FEATURES) == generate_fallback_fingerprint(FEATURES)


def test_fallback_encoding_matches_feature_join():
    raw = "Mozilla/5.0 Test|en-US|1920|1080|24|-60|8|0"
    assert generate_fallback_fingerprint(FEATURES) == _expected_fallback(raw, 32)


def test_fallback_defaults_for_missing_cores_and_touch():
    features = ClientFeatures(
        user_agent="UA", language="fr", screen_width=390, screen_height=844,
        color_depth=32, timezone_offset=0,
    )
    raw = "UA|fr|390|844|32|0|unknown|0"
    assert generate_fallback_fingerprint(features) == _expected_fallback(raw, 32)


def test_no_client_runtime_gives_marker():
    assert generate_client_fingerprint(None) == "server-side-render"


def test_client_combine_matches_server_combine():
    assert combine_client_fingerprints("s" * 64, "c" * 32) == combine_fingerprints("s" * 64, "c" * 32)


def test_client_combine_without_hashing_falls_back_to_base64():
    def no_hashing(_data: bytes) -> str:
        raise RuntimeError("crypto.subtle unavailable")

    value = combine_client_fingerprints("server", "client", hasher=no_hashing)
    assert value == _expected_fallback("server:client", 64)
    assert not is_valid_fingerprint(value)


def test_default_hasher_is_sha256():
    assert combine_client_fingerprints("a", "b") == hashlib.sha256(b"a:b").hexdigest()
