"""
Application exceptions and their mapping to JSON error responses.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for all application errors."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, display_message: Optional[str] = None):
        self.message = message or self.default_message
        self.display_message = display_message
        super().__init__(self.message)

    def to_content(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {"message": self.message}
        if self.display_message:
            content["displayMessage"] = self.display_message
        return content


class AuthenticationError(AppError):
    """Missing, invalid or expired credential."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class InvalidCredentialsError(AuthenticationError):
    default_message = "WRONG_CREDENTIALS"

    def __init__(self):
        super().__init__(display_message="Incorrect password for this account")


class UserNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "USER_NOT_EXISTS"

    def __init__(self):
        super().__init__(display_message="No account exists for this email, please register first")


class NotFoundOrNotOwnedError(AppError):
    """Raised for a note that does not exist or belongs to someone else."""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Note not found"


class DuplicateResourceError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User already exists with this email"


class InvalidRequestError(AppError):
    """Request data that passed schema parsing but is still unusable."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request data"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors

    def to_content(self) -> Dict[str, Any]:
        content = super().to_content()
        content["errors"] = self.errors
        return content


class StoreError(AppError):
    """Any failure of the underlying store. Details never reach the client."""

    def to_content(self) -> Dict[str, Any]:
        return {"message": self.default_message}


def format_validation_errors(errors) -> List[Dict[str, str]]:
    """Flatten pydantic errors into field/message pairs."""
    formatted = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        formatted.append({"field": ".".join(loc), "message": error.get("msg", "Invalid value")})
    return formatted


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_content(), headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "message": "Invalid request data",
            "errors": format_validation_errors(exc.errors()),
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error handlers to an application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
