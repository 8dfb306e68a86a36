"""
Pydantic schemas shared by the API boundary and the tracking pipeline.

DeviceInfo mirrors the device snapshot stored on every click record;
TrackingRequest is the inbound tracking event; ApiResponse is the envelope
every JSON route answers with.
"""

from typing import Any, Literal, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

DeviceType = Literal["mobile", "tablet", "desktop", "unknown"]


class DeviceInfo(BaseModel):
    """Parsed User-Agent snapshot for one device."""
    type: DeviceType = "unknown"
    browser: str = "Unknown"
    browser_version: str = "Unknown"
    os: str = "Unknown"
    os_version: str = "Unknown"
    user_agent: str = ""


class TrackingRequest(BaseModel):
    """
    Inbound tracking event posted by the client runtime.

    Required fields are optional at the schema level on purpose: a missing
    field must produce the 400 envelope ("Missing required fields"), not
    FastAPI's 422 validation body.
    """
    fingerprint: Optional[str] = None
    campaign_id: Optional[str] = None
    target_url: Optional[str] = None
    server_hash: Optional[str] = ""
    client_hash: Optional[str] = ""
    device: Optional[DeviceInfo] = None
    referrer: Optional[str] = None
    ip: Optional[str] = None
    language: Optional[str] = "unknown"


class ApiResponse(BaseModel):
    """Response envelope: {success, data?, error?, warning?}."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    warning: Optional[str] = None

    def to_body(self) -> dict:
        """JSON-ready dict; unset optional keys are omitted, nested None values kept."""
        body = {"success": self.success}
        for name in ("data", "error", "warning"):
            value = getattr(self, name)
            if value is not None:
                body[name] = value
        return jsonable_encoder(body)


class FingerprintComponents(BaseModel):
    """Raw request metadata the server signal is derived from."""
    user_agent: str = "unknown"
    ip: str = "unknown"
    language: str = "unknown"
