"""
Error taxonomy and FastAPI exception handlers.

Every handled fault is turned into a JSON body of the form {"message": ...}.
"""

import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pymongo.errors import DuplicateKeyError, PyMongoError


class StorefrontException(Exception):
    """Base exception for storefront errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(StorefrontException):
    """Missing or malformed field, or a business rule was violated."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class NotFoundError(StorefrontException):
    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", status_code=404)


class Unauthenticated(StorefrontException):
    """No usable bearer credential was supplied."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, status_code=401)


class InvalidCredential(StorefrontException):
    """A bearer credential was supplied but failed verification."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, status_code=400)


class ServerError(StorefrontException):
    def __init__(self, message: str = "Internal Server Error"):
        super().__init__(message, status_code=500)


def create_error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _duplicate_key_message(exc: DuplicateKeyError) -> str:
    details = exc.details or {}
    keys = details.get("keyValue") or details.get("keyPattern") or {}
    if keys:
        return f"Duplicate value for {', '.join(keys)}"
    return "Duplicate key error"


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return "; ".join(messages) or "Invalid request"


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(StorefrontException)
    async def storefront_exception_handler(request: Request, exc: StorefrontException):
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        return create_error_response(exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning(f"Validation error on {request.url.path}: {message}")
        return create_error_response(message, 400)

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        message = _duplicate_key_message(exc)
        logger.warning(f"Duplicate key on {request.url.path}: {message}")
        return create_error_response(message, 400)

    @app.exception_handler(PyMongoError)
    async def store_error_handler(request: Request, exc: PyMongoError):
        logger.error(f"Store failure on {request.method} {request.url.path}: {exc}")
        return create_error_response("Database error", 500)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {type(exc).__name__}: {exc}\n{traceback.format_exc()}")
        return create_error_response("Internal Server Error", 500)
