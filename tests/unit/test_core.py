# tests/unit/test_core.py

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from survey_relay.config import AppConfig, SheetsConfig
from survey_relay.core import EmailSubmissionProcessor, SheetsSubmissionProcessor
from survey_relay.exceptions import DispatchError
from survey_relay.formatting import SUBJECT_PREFIX
from survey_relay.schemas import HttpRequest


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        brevo_api_key="key",
        to_email="owner@example.com",
        from_email="noreply@example.com",
        site_name="滿意度測試站",
        log_level="INFO",
        http_timeout_seconds=10,
    )


@pytest.fixture
def sheets_config() -> SheetsConfig:
    return SheetsConfig(
        spreadsheet_id="sheet-123",
        sheet_name="回覆",
        credentials_file="credentials.json",
        log_level="INFO",
    )


def _request(body: str, content_type: str = "application/json") -> HttpRequest:
    return HttpRequest(
        method="POST",
        headers={"content-type": content_type, "user-agent": "UA/2.0"},
        body=body.encode("utf-8"),
        source_ip="198.51.100.9",
    )


# --- Email processor ---


def test_compose_builds_brevo_request(app_config):
    processor = EmailSubmissionProcessor(config=app_config, mailer=MagicMock())

    email = processor.compose({"q1": "5", "q3": "4", "customer_name": "王small"})
    payload = email.to_payload()

    assert payload["subject"] == SUBJECT_PREFIX + "王small"
    assert payload["sender"] == {"email": "noreply@example.com", "name": "滿意度測試站"}
    assert payload["to"] == [{"email": "owner@example.com"}]
    assert "4 / 5" in payload["htmlContent"]
    assert "未填" in payload["htmlContent"]


def test_compose_uses_submitted_at_when_present(app_config):
    processor = EmailSubmissionProcessor(config=app_config, mailer=MagicMock())

    email = processor.compose({"submittedAt": "2024-05-01T00:00:00Z"})

    assert "2024/05/01 08:00:00" in email.html_content
    # submittedAt is skipped from the detail table
    assert "submittedAt" not in email.html_content


def test_compose_keeps_raw_unparseable_submitted_at(app_config):
    processor = EmailSubmissionProcessor(config=app_config, mailer=MagicMock())

    email = processor.compose({"submittedAt": "sometime today"})

    assert "送出時間：<span>sometime today</span>" in email.html_content


def test_process_sends_exactly_once(app_config):
    mailer = MagicMock()
    processor = EmailSubmissionProcessor(config=app_config, mailer=mailer)

    decoded = processor.process(_request(json.dumps({"name": "Bob", "q1": "ok"})))

    assert decoded.fields == {"name": "Bob", "q1": "ok"}
    mailer.send_email.assert_called_once()
    sent = mailer.send_email.call_args.args[0]
    assert sent.subject == SUBJECT_PREFIX + "Bob"


def test_process_malformed_body_still_sends(app_config):
    mailer = MagicMock()
    processor = EmailSubmissionProcessor(config=app_config, mailer=mailer)

    decoded = processor.process(_request("{broken"))

    assert decoded.malformed is True
    assert decoded.fields == {}
    sent = mailer.send_email.call_args.args[0]
    assert sent.subject == SUBJECT_PREFIX + "未填姓名"


def test_process_propagates_dispatch_error(app_config):
    mailer = MagicMock()
    mailer.send_email.side_effect = DispatchError("Brevo", 400, "bad sender")
    processor = EmailSubmissionProcessor(config=app_config, mailer=mailer)

    with pytest.raises(DispatchError):
        processor.process(_request("{}"))
    assert mailer.send_email.call_count == 1


# --- Sheets processor ---


def test_sheets_process_appends_positional_row(sheets_config):
    sheets = MagicMock()
    processor = SheetsSubmissionProcessor(config=sheets_config, sheets=sheets)
    now = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)

    processor.process(
        _request("customer_name=Amy&q1=5&q3=4", "application/x-www-form-urlencoded"),
        now=now,
    )

    sheets.append_row.assert_called_once_with(
        "回覆!A1",
        [
            "2024/05/01 20:30:00",
            "Amy",
            "5",
            "",
            "4",
            "",
            "",
            "",
            "198.51.100.9",
            "UA/2.0",
        ],
    )
