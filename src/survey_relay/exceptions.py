# src/survey_relay/exceptions.py

"""
Shared custom exceptions for the Survey Relay service.

Centralizing exception definitions in a separate module prevents circular
import errors between other modules that need to raise or catch them.

Exception Hierarchy:
- SurveyRelayError (base)
  - ConfigurationError        -> HTTP 500, raised before any body parsing
  - MethodNotAllowedError     -> HTTP 405
  - DispatchError             -> HTTP 502, downstream provider rejected the request
"""

from typing import Any, Dict, Optional


class SurveyRelayError(Exception):
    """Base exception for all Survey Relay service errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = dict(context) if context else {}  # Copy context to prevent mutation

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "error_message": self.message,
            "context": self.context,
        }


class ConfigurationError(SurveyRelayError):
    """Raised when there's an error in the application configuration."""

    def __init__(self, message: str, **kwargs):
        if "error_code" not in kwargs:
            kwargs["error_code"] = "CONFIGURATION_ERROR"
        super().__init__(message, **kwargs)


class MethodNotAllowedError(SurveyRelayError):
    """Raised when the endpoint is called with anything other than POST."""

    def __init__(self, method: str, **kwargs):
        message = "Method Not Allowed"
        context = {"method": method}
        super().__init__(message, error_code="METHOD_NOT_ALLOWED", context=context, **kwargs)
        self.method = method


class DispatchError(SurveyRelayError):
    """Raised when the email or spreadsheet provider does not acknowledge a delivery."""

    def __init__(
        self,
        provider: str,
        status_code: Optional[int] = None,
        details: str = "",
        **kwargs,
    ):
        message = f"{provider} API error"
        context = {}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        context.update({"provider": provider, "status_code": status_code})
        if "error_code" not in kwargs:
            kwargs["error_code"] = "DISPATCH_FAILED"
        super().__init__(message, context=context, **kwargs)
        self.provider = provider
        self.status_code = status_code
        self.details = details


# === Utility Functions ===

def get_error_context(error: Exception) -> Dict[str, Any]:
    """Extract error context for logging."""
    if isinstance(error, SurveyRelayError):
        return error.to_dict()
    else:
        return {
            "error_type": error.__class__.__name__,
            "error_message": str(error),
        }
