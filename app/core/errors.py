from typing import Optional

from fastapi import HTTPException
from starlette import status


class DomainError(HTTPException):
    """Base for errors raised by the submission and reward engines.

    Subclasses carry a stable ``code`` and a default HTTP status so services can
    raise them directly, the same way they would raise ``HTTPException``.
    """

    code = "error"
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Request failed"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.default_detail,
        )


class ValidationError(DomainError):
    code = "validation_error"
    status_code_default = status.HTTP_400_BAD_REQUEST
    default_detail = "Missing required fields"


class Unauthorized(DomainError):
    code = "unauthorized"
    status_code_default = status.HTTP_403_FORBIDDEN
    default_detail = "Unauthorized"


class NotFound(DomainError):
    code = "not_found"
    status_code_default = status.HTTP_404_NOT_FOUND
    default_detail = "Submission not found"


class SessionMismatch(DomainError):
    code = "session_mismatch"
    status_code_default = status.HTTP_409_CONFLICT
    default_detail = "Signing session does not match this submission"


class NotReady(DomainError):
    code = "not_ready"
    status_code_default = status.HTTP_409_CONFLICT
    default_detail = "Submission is not ready for this action"


class UpstreamUnavailable(DomainError):
    code = "upstream_unavailable"
    status_code_default = status.HTTP_502_BAD_GATEWAY
    default_detail = "Upstream service unavailable"
