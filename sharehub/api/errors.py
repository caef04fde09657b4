import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sharehub.utils.exceptions import ShareHubException

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    content = {"status": "error", "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def sharehub_exception_handler(request: Request, exc: ShareHubException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        # Server-side details stay in the log; clients get the class default
        return error_response(exc.status_code, type(exc).message)
    return error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        422,
        "Validation error",
        errors=exc.errors(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Map every error raised in a request to a {status, message} body"""
    app.add_exception_handler(ShareHubException, sharehub_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
