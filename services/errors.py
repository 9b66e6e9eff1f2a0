"""Error taxonomy for the dispatch service.

Every error carries the HTTP status it maps to and renders as the standard
`{"error": ..., "details": ...}` body. Nothing here is ever retried.
"""

from typing import Optional

from fastapi import status


class DispatchError(Exception):
    """Base class for errors that terminate a request."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, error: str, details: Optional[str] = None):
        self.error = error
        self.details = details
        super().__init__(error)

    def to_content(self) -> dict:
        content = {"error": self.error}
        if self.details:
            content["details"] = self.details
        return content


class ValidationFailed(DispatchError):
    """Malformed, user-correctable input."""

    status_code = status.HTTP_400_BAD_REQUEST


class MissingField(ValidationFailed):
    """One or more required fields were empty."""

    def __init__(self, error: str, fields: list[str]):
        self.fields = fields
        super().__init__(error, details=f"Missing: {', '.join(fields)}")


class InvalidAddress(ValidationFailed):
    """An address failed the syntactic email check."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Invalid email address: {address}")


class NotConfigured(DispatchError):
    """A relay or provider credential is missing and must be set up out of band."""

    status_code = status.HTTP_400_BAD_REQUEST


class ProviderUnavailable(NotConfigured):
    """No completion provider credential is configured."""


class ProviderFailure(DispatchError):
    """The completion provider call raised."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class SendFailure(DispatchError):
    """The mail relay raised while transmitting."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
