"""Error taxonomy for CRM Calendar Sync.

Every error carries the HTTP status the API answers with; the handlers in
``crmsync.main`` render them as ``{"success": false, "error": ...}``.
"""

from typing import Any


class CRMSyncError(Exception):
    """Base exception for all CRM Calendar Sync errors."""

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(CRMSyncError):
    """Missing or malformed input."""

    status_code = 400


class PolicyViolationError(ValidationError):
    """A request that is well-formed but breaks a tagging rule."""


class AuthConfigurationError(CRMSyncError):
    """Google OAuth client credentials are not configured."""

    status_code = 500


class AuthExpiredError(CRMSyncError):
    """No usable Google credentials, or Google rejected the current ones."""

    status_code = 401


class NotFoundError(CRMSyncError):
    """Requested entity does not exist."""

    status_code = 404


class DuplicateEmailError(CRMSyncError):
    """A contact with this email already exists."""

    status_code = 409

    def __init__(self, email: str, existing: Any = None):
        self.email = email
        self.existing = existing
        super().__init__(f"Contact with email {email} already exists")


class ProviderError(CRMSyncError):
    """Google Calendar request failed for a reason other than authorization."""

    status_code = 500


class StoreError(CRMSyncError):
    """Database operation failed."""

    status_code = 500
