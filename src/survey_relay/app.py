"""
The Lambda Adapter for the Survey Relay service.

This module is the main entry point for the AWS Lambda functions. It is
responsible for:
1.  Initializing AWS Lambda Powertools (Logger, Tracer and Metrics).
2.  Normalizing the API Gateway proxy event into an `HttpRequest`.
3.  Rejecting non-POST requests and checking configuration before any body
    parsing takes place.
4.  Invoking the email (`handler`) or spreadsheet (`sheets_handler`)
    processor.
5.  Mapping every outcome to a JSON proxy response: 200, 405, 500 or 502.
"""

import json
import os
from functools import lru_cache
from typing import Any, Callable, Protocol

import requests
from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from .clients import BrevoClient, SheetsClient, build_sheets_service
from .config import SheetsConfig, get_config, get_sheets_config
from .core import EmailSubmissionProcessor, SheetsSubmissionProcessor
from .exceptions import (
    ConfigurationError,
    DispatchError,
    MethodNotAllowedError,
    get_error_context,
)
from .parsing import DecodeResult
from .schemas import HttpRequest, ProxyResponse

# --- Global & Reusable Components ---
SERVICE_NAME = os.getenv("POWERTOOLS_SERVICE_NAME", "survey-relay")

logger = Logger(service=SERVICE_NAME)
tracer = Tracer(service=SERVICE_NAME)
metrics = Metrics(namespace="SurveyRelay", service=SERVICE_NAME)

# Reused across warm invocations for connection pooling.
http_session = requests.Session()

JSON_HEADERS = {"content-type": "application/json; charset=utf-8"}


class SubmissionProcessor(Protocol):
    def process(self, request: HttpRequest) -> DecodeResult: ...


def json_response(status_code: int, payload: dict[str, Any]) -> ProxyResponse:
    return {
        "statusCode": status_code,
        "headers": dict(JSON_HEADERS),
        "body": json.dumps(payload, ensure_ascii=False),
    }


def _build_email_processor() -> EmailSubmissionProcessor:
    config = get_config()
    logger.setLevel(config.log_level)
    mailer = BrevoClient(
        session=http_session,
        api_key=config.brevo_api_key,
        timeout_seconds=config.http_timeout_seconds,
    )
    return EmailSubmissionProcessor(config=config, mailer=mailer)


@lru_cache(maxsize=1)
def _sheets_client(config: SheetsConfig) -> SheetsClient:
    service = build_sheets_service(config.credentials_file)
    return SheetsClient(service=service, spreadsheet_id=config.spreadsheet_id)


def _build_sheets_processor() -> SheetsSubmissionProcessor:
    config = get_sheets_config()
    logger.setLevel(config.log_level)
    return SheetsSubmissionProcessor(config=config, sheets=_sheets_client(config))


def handle_submission(
    event: dict, build_processor: Callable[[], SubmissionProcessor]
) -> ProxyResponse:
    """
    Runs one submission through *build_processor*'s processor.

    The processor is only built after the method check, and building it is
    what loads the configuration, so a misconfigured deployment answers 500
    without ever touching the request body.
    """
    try:
        request = HttpRequest.model_validate(event)
        if request.method.upper() != "POST":
            raise MethodNotAllowedError(request.method)

        processor = build_processor()

        logger.info(
            "Received survey submission",
            extra={
                "content_type": request.content_type,
                "body_bytes": len(request.body),
            },
        )
        decoded = processor.process(request)

    except MethodNotAllowedError as e:
        logger.info("Rejected request method", extra=get_error_context(e))
        return json_response(405, {"error": e.message})

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}", extra=get_error_context(e))
        return json_response(500, {"error": e.message})

    except DispatchError as e:
        metrics.add_metric(name="DispatchFailures", unit=MetricUnit.Count, value=1)
        logger.error(
            f"Delivery failed: {e}",
            extra={**get_error_context(e), "details": e.details},
        )
        return json_response(502, {"error": e.message, "details": e.details})

    except Exception as e:
        logger.exception("Submit function error")
        return json_response(500, {"error": str(e)})

    if decoded.malformed:
        metrics.add_metric(
            name="MalformedSubmissionBodies", unit=MetricUnit.Count, value=1
        )
    metrics.add_metric(name="SubmissionsDelivered", unit=MetricUnit.Count, value=1)
    logger.info("Survey submission delivered", extra={"field_count": len(decoded.fields)})
    return json_response(200, {"ok": True})


@logger.inject_lambda_context()
@tracer.capture_lambda_handler
@metrics.log_metrics(capture_cold_start_metric=True)
def handler(event: dict, context: LambdaContext) -> ProxyResponse:
    """Email variant: render the submission and send it through Brevo."""
    return handle_submission(event, _build_email_processor)


@logger.inject_lambda_context()
@tracer.capture_lambda_handler
@metrics.log_metrics(capture_cold_start_metric=True)
def sheets_handler(event: dict, context: LambdaContext) -> ProxyResponse:
    """Spreadsheet variant: append the submission as a row."""
    return handle_submission(event, _build_sheets_processor)
