"""
Error taxonomy for the drive API.

Services raise these; a single handler registered in ``app.main`` renders them as
``{"error": message}`` responses with the mapped HTTP status.
"""
from typing import Any, Dict, List, Optional


class DriveError(Exception):
    """
    Base exception for all drive API errors.

    Attributes:
        message: Human-readable error message returned to the client
        status_code: HTTP status the error maps to
        details: Extra context included in the response when present
    """

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class BadRequestError(DriveError):
    """Missing or invalid input."""

    status_code = 400


class UnauthenticatedError(DriveError):
    """Missing, malformed, invalid or expired bearer token."""

    status_code = 401


class ForbiddenError(DriveError):
    """The caller does not own the target item."""

    status_code = 403


class NotFoundError(DriveError):
    """The row does not exist under the caller's scope."""

    status_code = 404


class ConflictError(DriveError):
    """The write collides with an existing row (e.g. a duplicate share grant)."""

    status_code = 409


class UpstreamError(DriveError):
    """The identity provider, object storage or database failed."""

    status_code = 500


class StorageError(UpstreamError):
    pass


class IdentityProviderError(UpstreamError):
    pass


class PartialFailureError(UpstreamError):
    """
    A multi-step write stopped after its first step.

    ``orphaned_paths`` lists storage objects that no longer match the metadata and
    have to be reconciled by hand.
    """

    def __init__(self, message: str, orphaned_paths: List[str]):
        super().__init__(message, details={"orphaned_paths": orphaned_paths})
        self.orphaned_paths = orphaned_paths
