# src/survey_relay/clients.py

"""
Client wrappers for the downstream delivery providers (Brevo and Google Sheets).

These classes provide a small, typed interface over the raw HTTP session and
the Google API resource, and translate every provider failure into a
`DispatchError` so the Lambda adapter only has one exception to map to a 502.
Each method makes exactly one request. Nothing is retried.
"""

import logging
from typing import Any

import requests
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .exceptions import ConfigurationError, DispatchError
from .schemas import BrevoEmailRequest

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class BrevoClient:
    """
    A wrapper for the Brevo transactional email endpoint.
    """

    def __init__(
        self,
        session: requests.Session,
        api_key: str,
        timeout_seconds: float = 10,
        send_url: str = BREVO_SEND_URL,
    ):
        """
        Initializes the BrevoClient.

        Args:
            session: A requests session, reused across warm invocations.
            api_key: The Brevo API key sent in the ``api-key`` header.
            timeout_seconds: Connect/read timeout for the single send request.
            send_url: Override for the send endpoint.
        """
        self._session = session
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._send_url = send_url

    def send_email(self, email: BrevoEmailRequest) -> dict[str, Any]:
        """
        Sends one transactional email.
        Returns the provider's JSON acknowledgement (may be empty).
        Raises DispatchError for any non-2xx answer.
        """
        headers = {
            "api-key": self._api_key,
            "accept": "application/json",
            "content-type": "application/json",
        }
        response = self._session.post(
            self._send_url,
            json=email.to_payload(),
            headers=headers,
            timeout=self._timeout,
        )

        if not response.ok:
            raise DispatchError(
                provider="Brevo",
                status_code=response.status_code,
                details=response.text,
                error_code="BREVO_SEND_FAILED",
            )

        logger.debug(
            "Brevo accepted the email",
            extra={"status_code": response.status_code},
        )
        try:
            return response.json()
        except ValueError:
            return {}


def build_sheets_service(credentials_file: str) -> Any:
    """Creates an authenticated Sheets v4 resource from a service-account key file."""
    try:
        credentials = service_account.Credentials.from_service_account_file(
            credentials_file, scopes=SHEETS_SCOPES
        )
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            f"Unable to load service account credentials: {e}",
            context={"credentials_file": credentials_file},
        ) from e
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


class SheetsClient:
    """
    A wrapper for appending rows to a Google Sheets spreadsheet.
    """

    def __init__(self, service: Any, spreadsheet_id: str):
        self._service = service
        self._spreadsheet_id = spreadsheet_id

    def append_row(self, append_range: str, row: list[str]) -> dict[str, Any]:
        """Appends one row below the table found at *append_range*."""
        request = (
            self._service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self._spreadsheet_id,
                range=append_range,
                valueInputOption="USER_ENTERED",
                insertDataOption="INSERT_ROWS",
                body={"values": [row]},
            )
        )
        try:
            result = request.execute()
        except HttpError as e:
            content = e.content
            details = content.decode("utf-8", errors="replace") if isinstance(content, bytes) else str(content or "")
            raise DispatchError(
                provider="Google Sheets",
                status_code=e.resp.status if e.resp is not None else None,
                details=details,
                error_code="SHEETS_APPEND_FAILED",
                context={"range": append_range},
            ) from e

        logger.debug(
            "Row appended",
            extra={"updated_range": (result.get("updates") or {}).get("updatedRange")},
        )
        return result
