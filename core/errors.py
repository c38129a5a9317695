from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    """Base for every error the rule engine raises.

    Carries a stable machine-readable ``code`` and the HTTP status the
    transport layer maps it to.
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Unexpected server error."

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Invalid request."


class ReferentialIntegrityError(ValidationError):
    code = "REFERENTIAL_INTEGRITY"
    message = "Referential integrity violated."


class UnauthenticatedError(ApiError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Authentication required."


class ForbiddenError(ApiError):
    status_code = 403
    code = "FORBIDDEN"
    message = "User does not have required HR role."


class UnauthorizedCompanyError(ApiError):
    status_code = 403
    code = "UNAUTHORIZED_COMPANY"
    message = "Forbidden: company code not assigned"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found."


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT"
    message = "Conflict."


class PreconditionFailedError(ApiError):
    status_code = 412
    code = "PRECONDITION_FAILED"
    message = "Entity has been modified by another user. Please refresh and try again."


class PreconditionRequiredError(PreconditionFailedError):
    status_code = 428
    code = "PRECONDITION_REQUIRED"
    message = "Precondition required: supply an If-Match header."


class InternalError(ApiError):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Unexpected server error."


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
