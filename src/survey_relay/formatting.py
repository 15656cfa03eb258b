# src/survey_relay/formatting.py

"""
Field projection, labeling and display formatting for survey submissions.

Everything in this module is a pure function of its inputs: no I/O, no
logging and no mutation of the submission passed in.
"""

import html
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple

from .schemas import Submission

# Declaration order is the render order for labeled fields.
FIELD_LABELS: dict[str, str] = {
    "customer_name": "姓名 / 稱呼 / LINE",
    "service_type": "清洗項目",
    "source": "認識自然大叔的管道",
    "q1": "Q1 服務整體滿意度",
    "q2": "Q2 服務人員專業程度",
    "q2_extra": "Q2 補充說明",
    "q3": "Q3 服務人員表現 (1-5 分)",
    "q4": "Q4 推薦意願 (1-10 分)",
    "q5": "Q5 再次委託意願",
    "q6": "Q6 其他建議 / 鼓勵",
}

SKIP_KEYS: frozenset[str] = frozenset(
    {
        "bot-field",
        "form-name",
        "g-recaptcha-response",
        "submit",
        "userAgent",
        "submittedAt",
    }
)

CUSTOMER_NAME_KEYS = ("customer_name", "name", "line", "姓名")
SHEET_QUESTION_KEYS = ("q1", "q2", "q3", "q4", "q5", "q6")

NOT_FILLED = "未填"
NAME_NOT_PROVIDED = "未填姓名"
SUBJECT_PREFIX = "【服務滿意度】新問卷回覆："

STRIPE_EVEN = "#f9fafb"
STRIPE_ODD = "#ffffff"

DISPLAY_TZ = timezone(timedelta(hours=8))
DISPLAY_FORMAT = "%Y/%m/%d %H:%M:%S"


class RenderedRow(NamedTuple):
    label: str
    value: str
    background: str


class Summary(NamedTuple):
    satisfaction: str
    staff_rating: str
    recommend_score: str
    rebook_intent: str


# --- Value helpers ---


def to_text(value: Any) -> str:
    """Flatten a field value: lists are joined with ", " and None becomes ""."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(to_text(v) for v in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def escape_html(value: Any) -> str:
    return html.escape(to_text(value), quote=True)


def display_value(value: Any) -> str:
    """Escape a value for HTML and turn its line breaks into <br/> tags."""
    text = to_text(value).replace("\r\n", "\n").replace("\r", "\n")
    return escape_html(text).replace("\n", "<br/>")


# --- Field ordering ---


def order_fields(fields: Submission) -> list[tuple[str, Any]]:
    """
    Merge the submission with the label table into one ordered list.

    Labeled keys come first in label-table order, followed by every other
    key in the submission's own order. Skipped keys are removed afterwards.
    """
    ordered = [(key, fields[key]) for key in FIELD_LABELS if key in fields] + [
        (key, value) for key, value in fields.items() if key not in FIELD_LABELS
    ]
    return [(key, value) for key, value in ordered if key not in SKIP_KEYS]


def project_rows(fields: Submission) -> list[RenderedRow]:
    return [
        RenderedRow(
            label=escape_html(FIELD_LABELS.get(key, key)),
            value=display_value(value),
            background=STRIPE_EVEN if index % 2 == 0 else STRIPE_ODD,
        )
        for index, (key, value) in enumerate(order_fields(fields))
    ]


# --- Summary & headline values ---


def _summary_cell(value: Any, scale: str | None = None) -> str:
    text = to_text(value)
    if not value or not text:
        return NOT_FILLED
    escaped = escape_html(text)
    return f"{escaped} / {scale}" if scale else escaped


def extract_summary(fields: Submission) -> Summary:
    return Summary(
        satisfaction=_summary_cell(fields.get("q1")),
        staff_rating=_summary_cell(fields.get("q3"), "5"),
        recommend_score=_summary_cell(fields.get("q4"), "10"),
        rebook_intent=_summary_cell(fields.get("q5")),
    )


def resolve_customer_name(fields: Submission) -> str:
    """The first non-blank of customer_name, name, line and 姓名 (stripped), or ""."""
    for key in CUSTOMER_NAME_KEYS:
        text = to_text(fields.get(key)).strip()
        if text:
            return text
    return ""


def build_subject(customer_name: str) -> str:
    return f"{SUBJECT_PREFIX}{customer_name or NAME_NOT_PROVIDED}"


# --- Timestamps ---


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Numeric values are epoch milliseconds, as browsers send Date.now().
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_display_time(value: Any = None) -> str:
    """
    Render a timestamp in UTC+8 as ``YYYY/MM/DD HH:MM:SS``.

    None or an empty value means "now". Anything that cannot be parsed is
    returned unchanged so a bad timestamp never blocks delivery.
    """
    if value is None or value == "":
        return datetime.now(DISPLAY_TZ).strftime(DISPLAY_FORMAT)
    parsed = _parse_timestamp(value)
    if parsed is None:
        return str(value)
    return parsed.astimezone(DISPLAY_TZ).strftime(DISPLAY_FORMAT)


# --- Spreadsheet row ---


def build_sheet_row(
    fields: Submission,
    submitted_at: datetime | None = None,
    source_ip: str = "",
    user_agent: str = "",
) -> list[str]:
    """
    Produce the positional row appended to the spreadsheet.

    Column order: timestamp, customer name, q1..q6, requester IP, user agent.
    The destination sheet's columns depend on this order.
    """
    return [
        format_display_time(submitted_at or datetime.now(timezone.utc)),
        resolve_customer_name(fields),
        *(to_text(fields.get(key)) for key in SHEET_QUESTION_KEYS),
        source_ip or "",
        user_agent or to_text(fields.get("userAgent")),
    ]
