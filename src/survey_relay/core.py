# src/survey_relay/core.py

"""
Core business logic for relaying a survey submission.

Each processor receives its configuration and delivery client at
construction, decodes the request body, builds the outbound payload and makes
exactly one delivery attempt. Processors know nothing about Lambda events or
HTTP responses; that mapping lives in `app.py`.
"""

import logging
from datetime import datetime, timezone

from .clients import BrevoClient, SheetsClient
from .config import AppConfig, SheetsConfig
from .formatting import (
    build_sheet_row,
    build_subject,
    extract_summary,
    format_display_time,
    project_rows,
    resolve_customer_name,
)
from .parsing import DecodeResult, decode_submission
from .rendering import build_email_html
from .schemas import BrevoAddress, BrevoEmailRequest, HttpRequest, Submission

logger = logging.getLogger(__name__)


def _decode(request: HttpRequest) -> DecodeResult:
    decoded = decode_submission(request.content_type, request.body)
    if decoded.malformed:
        # Delivery still goes ahead with an empty field set.
        logger.warning(
            "Request body could not be decoded; continuing with no fields",
            extra={
                "content_type": request.content_type,
                "body_bytes": len(request.body),
            },
        )
    return decoded


class EmailSubmissionProcessor:
    """Renders a submission into an HTML email and sends it through Brevo."""

    def __init__(self, config: AppConfig, mailer: BrevoClient):
        self._config = config
        self._mailer = mailer

    def compose(self, fields: Submission, now: datetime | None = None) -> BrevoEmailRequest:
        """Build the Brevo request for *fields* without sending it."""
        customer_name = resolve_customer_name(fields)
        submitted_at = format_display_time(
            fields.get("submittedAt") or now or datetime.now(timezone.utc)
        )

        html_content = build_email_html(
            rows=project_rows(fields),
            summary=extract_summary(fields),
            submitted_at=submitted_at,
            customer_name=customer_name,
            site_name=self._config.site_name,
        )

        return BrevoEmailRequest(
            sender=BrevoAddress(email=self._config.from_email, name=self._config.site_name),
            to=[BrevoAddress(email=self._config.to_email)],
            subject=build_subject(customer_name),
            html_content=html_content,
        )

    def process(self, request: HttpRequest) -> DecodeResult:
        decoded = _decode(request)
        email = self.compose(decoded.fields)

        logger.info(
            "Sending survey email",
            extra={"field_count": len(decoded.fields), "subject": email.subject},
        )
        self._mailer.send_email(email)
        return decoded


class SheetsSubmissionProcessor:
    """Appends a submission as one positional row to a spreadsheet."""

    def __init__(self, config: SheetsConfig, sheets: SheetsClient):
        self._config = config
        self._sheets = sheets

    def process(self, request: HttpRequest, now: datetime | None = None) -> DecodeResult:
        decoded = _decode(request)
        row = build_sheet_row(
            decoded.fields,
            submitted_at=now or datetime.now(timezone.utc),
            source_ip=request.source_ip,
            user_agent=request.user_agent,
        )

        logger.info(
            "Appending survey row",
            extra={"field_count": len(decoded.fields), "range": self._config.append_range},
        )
        self._sheets.append_row(self._config.append_range, row)
        return decoded
