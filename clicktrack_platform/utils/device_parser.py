"""
User-Agent parsing into the DeviceInfo snapshot stored on click records.

Notes:
    - Rule tables are ordered: in-app browsers and Chromium forks must be
      matched before the engines they embed (Chrome, Safari).
    - Device type: explicit tablet / mobile hints win; otherwise any
      recognised OS means desktop; nothing recognised means unknown.
"""

import re
from typing import Optional, Tuple

from ..schemas import DeviceInfo

UNKNOWN = "Unknown"

_BROWSER_RULES = (
    ("Instagram", re.compile(r"Instagram ([\d.]+)")),
    ("Facebook", re.compile(r"FB(?:AV|_IAB)/([\d.]+)")),
    ("Edge", re.compile(r"Edg(?:e|A|iOS)?/([\d.]+)")),
    ("Opera", re.compile(r"(?:OPR|Opera)/([\d.]+)")),
    ("Samsung Internet", re.compile(r"SamsungBrowser/([\d.]+)")),
    ("Firefox", re.compile(r"(?:Firefox|FxiOS)/([\d.]+)")),
    ("Chrome", re.compile(r"(?:Chrome|CriOS)/([\d.]+)")),
    ("Safari", re.compile(r"Version/([\d.]+).*Safari/")),
    ("IE", re.compile(r"(?:MSIE |Trident/.*rv:)([\d.]+)")),
)

_WINDOWS_VERSIONS = {
    "10.0": "10",
    "6.3": "8.1",
    "6.2": "8",
    "6.1": "7",
    "6.0": "Vista",
    "5.1": "XP",
}

_IOS = re.compile(r"(?:iPhone|iPad|iPod).*? OS ([\d_]+)")
_MAC = re.compile(r"Mac OS X ([\d_.]+)")
_ANDROID = re.compile(r"Android ([\d.]+)")
_WINDOWS = re.compile(r"Windows NT ([\d.]+)")
_CHROME_OS = re.compile(r"CrOS \S+ ([\d.]+)")

_TABLET = re.compile(r"iPad|Tablet|PlayBook|Kindle|Silk/", re.IGNORECASE)
_MOBILE = re.compile(r"iPhone|iPod|Mobile|BlackBerry|Windows Phone|Opera Mini", re.IGNORECASE)

_LABELS = {
    "mobile": "Mobile",
    "tablet": "Tablet",
    "desktop": "Desktop",
    "unknown": "Unknown",
}


def _parse_browser(user_agent: str) -> Tuple[Optional[str], Optional[str]]:
    for name, pattern in _BROWSER_RULES:
        match = pattern.search(user_agent)
        if match:
            return name, match.group(1)
    return None, None


def _parse_os(user_agent: str) -> Tuple[Optional[str], Optional[str]]:
    match = _IOS.search(user_agent)
    if match:
        return "iOS", match.group(1).replace("_", ".")
    match = _ANDROID.search(user_agent)
    if match:
        return "Android", match.group(1)
    if "Android" in user_agent:
        return "Android", None
    match = _WINDOWS.search(user_agent)
    if match:
        return "Windows", _WINDOWS_VERSIONS.get(match.group(1), match.group(1))
    match = _CHROME_OS.search(user_agent)
    if match:
        return "Chrome OS", match.group(1)
    match = _MAC.search(user_agent)
    if match:
        return "macOS", match.group(1).replace("_", ".")
    if "Linux" in user_agent:
        return "Linux", None
    return None, None


def _parse_device_type(user_agent: str, os_name: Optional[str]) -> Optional[str]:
    if _TABLET.search(user_agent):
        return "tablet"
    if os_name == "Android" and "Mobile" not in user_agent:
        return "tablet"
    if _MOBILE.search(user_agent):
        return "mobile"
    return None


def parse_user_agent(user_agent: Optional[str]) -> DeviceInfo:
    """
    Parse a User-Agent string into a DeviceInfo.

    Args:
        user_agent (Optional[str]): Raw header value; None/empty gives an all-Unknown snapshot.

    Returns:
        DeviceInfo: type/browser/os with "Unknown" for anything unrecognised.
    """
    user_agent = user_agent or ""
    browser, browser_version = _parse_browser(user_agent)
    os_name, os_version = _parse_os(user_agent)
    hinted = _parse_device_type(user_agent, os_name)

    if hinted is not None:
        device_type = hinted
    elif os_name:
        device_type = "desktop"
    else:
        device_type = "unknown"

    return DeviceInfo(
        type=device_type,
        browser=browser or UNKNOWN,
        browser_version=browser_version or UNKNOWN,
        os=os_name or UNKNOWN,
        os_version=os_version or UNKNOWN,
        user_agent=user_agent,
    )


def device_type_label(device_type: str) -> str:
    return _LABELS.get(device_type, "Unknown")


def format_device_info(device: DeviceInfo) -> str:
    """e.g. "Chrome on Windows (Desktop)"."""
    return f"{device.browser} on {device.os} ({device_type_label(device.type)})"
