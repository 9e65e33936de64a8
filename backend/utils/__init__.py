"""
Utils Package

Provides utility modules for:
- errors: Application error types and the JSON error body
"""

from .errors import (
    CampaignMailError,
    NotFoundError,
    ConfigurationError,
    SendFailure,
    DatabaseError,
    error_body,
)

__all__ = [
    'CampaignMailError',
    'NotFoundError',
    'ConfigurationError',
    'SendFailure',
    'DatabaseError',
    'error_body',
]
