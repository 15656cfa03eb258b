# In src/survey_relay/schemas.py

import base64
import binascii
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, Field, model_validator

# --- Static Type Hinting (for mypy and IDEs) ---

# A decoded form submission: repeated fields hold a list of values.
Submission = dict[str, Any]


class ProxyResponse(TypedDict):
    """The API Gateway proxy integration response shape."""

    statusCode: int
    headers: dict[str, str]
    body: str


# --- Runtime Validation (using Pydantic) ---


class HttpRequest(BaseModel):
    """
    Pydantic model normalizing an API Gateway proxy event.

    Both the REST API (payload v1.0) and HTTP API (payload v2.0) event shapes
    are accepted. Header names are lower-cased and the body is always bytes,
    base64-decoded when the event says so.
    """

    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    source_ip: str = ""

    @model_validator(mode="before")
    @classmethod
    def from_proxy_event(cls, event: Any) -> Any:
        if not isinstance(event, dict):
            return event
        if "requestContext" not in event and "httpMethod" not in event:
            return event

        request_context = event.get("requestContext") or {}
        http = request_context.get("http") or {}
        identity = request_context.get("identity") or {}

        method = event.get("httpMethod") or http.get("method") or "GET"
        headers = {
            str(k).lower(): str(v)
            for k, v in (event.get("headers") or {}).items()
            if v is not None
        }

        raw_body = event.get("body") or ""
        if event.get("isBase64Encoded"):
            try:
                body = base64.b64decode(raw_body)
            except (binascii.Error, ValueError):
                body = raw_body.encode("utf-8")
        else:
            body = raw_body.encode("utf-8")

        source_ip = http.get("sourceIp") or identity.get("sourceIp") or ""
        if not source_ip:
            forwarded = headers.get("x-forwarded-for", "")
            source_ip = forwarded.split(",")[0].strip()

        return {
            "method": method,
            "headers": headers,
            "body": body,
            "source_ip": source_ip,
        }

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")


class BrevoAddress(BaseModel):
    email: str
    name: str | None = None


class BrevoEmailRequest(BaseModel):
    """Body of a Brevo ``POST /v3/smtp/email`` call."""

    model_config = ConfigDict(populate_by_name=True)

    sender: BrevoAddress
    to: list[BrevoAddress]
    subject: str
    html_content: str = Field(..., alias="htmlContent")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
