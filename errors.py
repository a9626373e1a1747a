import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as ModelValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApiError):
    status_code = 400


class AuthError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


class UploadError(ApiError):
    """Rejected multipart upload: size, count or type limit."""

    status_code = 400

    def __init__(self, error: str, message: str):
        super().__init__(message)
        self.error = error


def error_body(error: str, message: str = None) -> dict:
    body = {"success": False, "error": error}
    if message:
        body["message"] = message
    return body


def register_error_handlers(app: FastAPI):
    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.error, exc.message))

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(p) for p in first.get("loc", [])[1:])
            message = f"{field}: {first.get('msg')}" if field else first.get("msg")
        else:
            message = "Invalid request"
        return JSONResponse(status_code=400, content=error_body(message))

    @app.exception_handler(ModelValidationError)
    async def model_validation_error_handler(request: Request, exc: ModelValidationError):
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", []))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
        return JSONResponse(status_code=400, content=error_body(message))

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        return JSONResponse(status_code=409, content=error_body("Duplicate value for a unique field"))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", str(exc) or "Something went wrong"),
        )
