"""Application exceptions.

HTTP-facing errors subclass FastAPI's HTTPException so routers can raise
them directly. Domain errors are plain exceptions raised by collectors and
services; the API layer decides how to surface them.
"""

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "Internal error"):
        super().__init__(status_code=self.status_code, detail=detail)


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ServiceUnavailableError(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# --- Domain errors ---


class ProjectNotFoundError(Exception):
    """Raised before a sync run starts when the project does not exist."""

    def __init__(self, project_id):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class PositionLookupError(Exception):
    """A position source failed (network, HTTP status or malformed payload)."""


class TokenRefreshError(Exception):
    """OAuth refresh-token exchange failed."""


class ConfigurationError(Exception):
    """A required setting (API key, OAuth client) is missing."""
