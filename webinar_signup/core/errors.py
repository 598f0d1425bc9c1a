"""
Error types raised while processing a registration.

Every error knows the HTTP status it maps to, the top-level message, the stage
that failed (errorAt) and the raw body returned by the provider, if any.
"""

import json
from typing import Any, Dict, Optional

ERROR_AT_REQUEST_BODY = "requestBody"
ERROR_AT_ZOOM_TOKEN = "zoomToken"
ERROR_AT_ZOOM = "zoom"
ERROR_AT_MAILCHIMP = "mailchimp"
ERROR_AT_MAILCHIMP_SECONDARY = "mailchimpSecondary"


def extract_error_info(text: Optional[str]) -> Optional[str]:
    """Pull a readable message out of a provider error body, falling back to the raw text."""
    if not isinstance(text, str):
        return text
    try:
        parsed = json.loads(text)
    except ValueError:
        return text
    if isinstance(parsed, dict) and parsed.get("message"):
        return str(parsed["message"])
    return text


class RegistrationError(Exception):
    status_code = 500
    message = "Internal Server Error"
    error_at: Optional[str] = None

    def __init__(self, text: Optional[str] = None, error_at: Optional[str] = None):
        super().__init__(text)
        self.text = text
        if error_at is not None:
            self.error_at = error_at

    @property
    def info(self) -> Optional[str]:
        return extract_error_info(self.text)

    def to_response_body(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "info": self.info,
            "errorAt": self.error_at,
        }


class RequestValidationError(RegistrationError):
    """Missing or malformed input. Never reaches a provider."""

    message = "Request Error"
    error_at = ERROR_AT_REQUEST_BODY

    def __init__(self, text: str, status_code: int):
        super().__init__(text)
        self.status_code = status_code

    @property
    def info(self) -> Optional[str]:
        return self.text


class TokenAcquisitionError(RegistrationError):
    error_at = ERROR_AT_ZOOM_TOKEN


class RegistrantCreationError(RegistrationError):
    error_at = ERROR_AT_ZOOM


class ListSyncError(RegistrationError):
    error_at = ERROR_AT_MAILCHIMP
