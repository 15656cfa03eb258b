"""
Shared fixtures for unit tests.
"""

from __future__ import annotations

import base64
import json
import os
import types
import uuid

import pytest


@pytest.fixture(scope="session", autouse=True)
def _env_vars():
    """
    Ensures a deterministic environment for every test run.
    Overwrite *only* the variables needed by the handler.
    """
    original = os.environ.copy()
    os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "survey-relay-test")
    os.environ.setdefault("POWERTOOLS_LOG_LEVEL", "INFO")
    os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
    yield
    os.environ.clear()
    os.environ.update(original)


@pytest.fixture
def email_env(monkeypatch):
    """A complete email-variant environment."""
    monkeypatch.setenv("BREVO_API_KEY", "test-api-key")
    monkeypatch.setenv("TO_EMAIL", "owner@example.com")
    monkeypatch.setenv("FROM_EMAIL", "noreply@example.com")
    monkeypatch.delenv("SITE_NAME", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("HTTP_TIMEOUT_SECONDS", raising=False)


# ---------- Minimal, realistic API Gateway events ---------- #
def make_event(
    body: str | bytes = "",
    content_type: str | None = "application/json",
    method: str = "POST",
    is_base64: bool = False,
) -> dict:
    """Builds an HTTP API (payload v2.0) proxy event."""
    headers = {"user-agent": "pytest-browser/1.0"}
    if content_type is not None:
        headers["content-type"] = content_type
    if isinstance(body, bytes) or is_base64:
        raw = body if isinstance(body, bytes) else body.encode("utf-8")
        body = base64.b64encode(raw).decode("ascii")
        is_base64 = True
    return {
        "version": "2.0",
        "routeKey": "POST /submit",
        "rawPath": "/submit",
        "headers": headers,
        "requestContext": {
            "http": {
                "method": method,
                "path": "/submit",
                "sourceIp": "203.0.113.7",
                "userAgent": "pytest-browser/1.0",
            },
            "requestId": str(uuid.uuid4()),
        },
        "body": body,
        "isBase64Encoded": is_base64,
    }


@pytest.fixture
def json_event() -> dict:
    return make_event(
        json.dumps({"q1": "5", "q3": "4", "customer_name": "王small"}, ensure_ascii=False)
    )


@pytest.fixture
def lambda_context():
    """A *very* small stand-in for the LambdaContext object."""
    return types.SimpleNamespace(
        function_name="survey-relay",
        function_version="$LATEST",
        memory_limit_in_mb=128,
        aws_request_id="req-" + uuid.uuid4().hex,
        invoked_function_arn="arn:aws:lambda:ap-northeast-1:000000000000:function:survey-relay",
        get_remaining_time_in_millis=lambda: 30000,
    )
