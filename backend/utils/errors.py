"""
Error taxonomy shared by services and routers.

Services raise these; routers decide the HTTP status and body.

Error Response Format:
{
    "error": "Failed to send email",
    "details": "Template with ID 7 not found",
    "type": "NotFoundError"
}
"""

from typing import Optional


class CampaignMailError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or message


class NotFoundError(CampaignMailError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, identifier, key: str = "ID"):
        super().__init__(f"{entity} with {key} {identifier} not found")
        self.entity = entity
        self.identifier = identifier


class ConfigurationError(CampaignMailError):
    """A required external credential or setting is missing."""


class SendFailure(CampaignMailError):
    """The provider rejected the message or could not be reached."""

    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class DatabaseError(CampaignMailError):
    """Constraint violation or lost connectivity while talking to the database."""


def error_body(error: str, exc: Exception, include_type: bool = False) -> dict:
    """Build the JSON body returned for a failed request."""
    body = {
        "error": error,
        "details": getattr(exc, "details", None) or str(exc),
    }
    if include_type:
        body["type"] = type(exc).__name__
    return body
