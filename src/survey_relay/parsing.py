# src/survey_relay/parsing.py

"""
Tolerant request body decoding.

A form submission can arrive as JSON, as URL-encoded form data, as multipart
form data, or with no usable content type at all. `decode_submission` turns
any of these into a flat, insertion-ordered field map and never raises: a
body that cannot be decoded becomes an empty map and is flagged as
``malformed`` so the caller can log it.
"""

import json
import logging
from email.message import Message
from email.parser import Parser
from email.utils import collapse_rfc2231_value
from typing import Any, Iterable, NamedTuple
from urllib.parse import parse_qsl

from .schemas import Submission

logger = logging.getLogger(__name__)

JSON_TYPE = "application/json"
URLENCODED_TYPE = "application/x-www-form-urlencoded"
MULTIPART_TYPE = "multipart/form-data"


class DecodeResult(NamedTuple):
    fields: Submission
    malformed: bool = False


def accumulate_entries(entries: Iterable[tuple[str, Any]]) -> Submission:
    """
    Build a field map from (key, value) pairs.

    The first occurrence of a key stores the plain value; later occurrences
    turn it into a list, preserving first-seen order.
    """
    result: Submission = {}
    for key, value in entries:
        if key in result:
            existing = result[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[key] = [existing, value]
        else:
            result[key] = value
    return result


def _as_text(body: bytes | str) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def _parse_json_object(text: str) -> Submission | None:
    """Returns the decoded object, or None when the text is not a JSON object."""
    try:
        data = json.loads(text or "{}")
    except (json.JSONDecodeError, ValueError, RecursionError):
        # RecursionError: nesting deeper than the interpreter's recursion limit.
        return None
    if not isinstance(data, dict):
        return None
    return data


def parse_urlencoded(text: str) -> Submission:
    return accumulate_entries(parse_qsl(text, keep_blank_values=True))


def _part_value(part: Message) -> str:
    filename = part.get_filename()
    if filename:
        return filename
    encoding = (part.get("content-transfer-encoding") or "").strip().lower()
    if encoding not in ("base64", "quoted-printable"):
        payload = part.get_payload()
        return payload if isinstance(payload, str) else ""
    data = part.get_payload(decode=True) or b""
    charset = part.get_content_charset() or "utf-8"
    try:
        return data.decode(charset, errors="replace")
    except LookupError:
        return data.decode("utf-8", errors="replace")


def parse_multipart(content_type: str, body: bytes) -> Submission | None:
    """
    Decode a multipart/form-data body into a field map.

    The body is decoded as UTF-8 text before parsing so non-ASCII field
    names (e.g. ``姓名``) survive intact. Returns None when the body does not
    parse as a multipart message (for instance when the boundary parameter is
    missing).
    """
    if "boundary=" not in content_type.lower():
        return None

    head = f"Content-Type: {content_type}\r\nMIME-Version: 1.0\r\n\r\n"
    message = Parser().parsestr(head + _as_text(body))
    if not message.is_multipart():
        return None

    entries = []
    for part in message.get_payload():
        name = part.get_param("name", header="content-disposition")
        if not name:
            continue
        entries.append((collapse_rfc2231_value(name), _part_value(part)))
    return accumulate_entries(entries)


def _lenient_decode(text: str) -> DecodeResult:
    """JSON first, then URL-encoded. Never raises."""
    if not text.strip():
        return DecodeResult({})

    data = _parse_json_object(text)
    if data is not None:
        return DecodeResult(data)

    try:
        fields = parse_urlencoded(text)
    except ValueError:
        logger.debug("Body is neither JSON nor URL-encoded.")
        return DecodeResult({}, malformed=True)
    return DecodeResult(fields, malformed=not fields)


def decode_submission(content_type: str | None, body: bytes | str) -> DecodeResult:
    """
    Decode a request body according to its declared content type.

    Args:
        content_type: The raw Content-Type header value, or None.
        body: The raw request body.

    Returns:
        A DecodeResult whose ``fields`` is the Submission and whose
        ``malformed`` flag is set when a non-empty body yielded nothing usable.
    """
    ct = (content_type or "").lower()
    raw = body.encode("utf-8") if isinstance(body, str) else body or b""

    if JSON_TYPE in ct:
        text = _as_text(raw)
        if not text.strip():
            return DecodeResult({})
        data = _parse_json_object(text)
        if data is None:
            logger.debug("Declared JSON body failed to parse.")
            return DecodeResult({}, malformed=True)
        return DecodeResult(data)

    if URLENCODED_TYPE in ct:
        return DecodeResult(parse_urlencoded(_as_text(raw)))

    if MULTIPART_TYPE in ct:
        try:
            fields = parse_multipart(content_type or "", raw)
        except (ValueError, TypeError, LookupError) as e:
            logger.debug("Multipart body failed to parse.", extra={"error": str(e)})
            fields = None
        if fields is not None:
            return DecodeResult(fields)

    return _lenient_decode(_as_text(raw))
