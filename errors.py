"""
Error taxonomy and response shaping.

Every failure leaves the API as ``{"error": <message>, "details"?: <str | list>}``.
Services raise the ``ApiError`` subclasses below; the handlers registered by
``register_exception_handlers`` turn them (and anything unexpected) into responses.
"""
import logging
import re
from typing import List, Optional, Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings

logger = logging.getLogger(__name__)

Details = Optional[Union[str, List[str]]]


class ApiError(Exception):
    status_code = 500

    def __init__(self, error: str, details: Details = None):
        super().__init__(error)
        self.error = error
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class MissingInputError(ApiError):
    status_code = 400


class ValidationFailedError(ApiError):
    status_code = 400

    def __init__(self, details: List[str]):
        super().__init__("Validation failed", details)


class MalformedIdError(ApiError):
    """Raised when an identifier is not a valid ObjectId."""
    status_code = 400

    def __init__(self, label: str):
        super().__init__(f"Invalid {label} ID")


class DuplicateResourceError(ApiError):
    status_code = 400


class BusinessRuleError(ApiError):
    status_code = 400


class UnauthorizedError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


# ===================== Validation message shaping =====================

def _field_label(loc) -> str:
    names = [str(part) for part in loc if part not in ("body", "query", "path")]
    if not names:
        return "Request body"
    name = names[-1]
    if name.isdigit() and len(names) > 1:
        name = names[-2]
    name = re.sub(r"(?<=[a-z])(?=[A-Z])", " ", name)
    return name.replace("_", " ").capitalize()


def format_validation_errors(errors) -> List[str]:
    """Turn pydantic error dicts into human readable, per-field messages."""
    messages = []
    for err in errors:
        kind = err.get("type", "")
        label = _field_label(err.get("loc", ()))
        if kind == "missing":
            messages.append(f"{label} is required")
        elif kind == "value_error" and "error" in err.get("ctx", {}):
            messages.append(str(err["ctx"]["error"]))
        else:
            messages.append(f"{label}: {err.get('msg')}")
    return messages


# ===================== Handlers =====================

def _render(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body)


async def api_error_handler(request: Request, exc: ApiError):
    logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.error)
    return _render(exc.status_code, exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    messages = format_validation_errors(errors)
    if errors and all(err.get("type") == "missing" for err in errors):
        error = MissingInputError("Missing required fields", messages)
    else:
        error = ValidationFailedError(messages)
    return await api_error_handler(request, error)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        message = "Endpoint not found"
    else:
        message = str(exc.detail)
    return _render(exc.status_code, {"error": message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = {"error": "Something went wrong!"}
    if not settings.is_production:
        body["details"] = str(exc)
    return _render(500, body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
