from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from sso.domain.exceptions import DomainError, ErrorKind


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

STATUS_BY_KIND = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


def error_response(status_code: int, messages: list[str]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"errors": messages})


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or uuid4().hex


def _validation_messages(exc: RequestValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages or ["bad request"]


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
        status_code = STATUS_BY_KIND.get(exc.kind, 500)
        if status_code >= 500:
            logger.error(
                "api: internal error request_id=%s path=%s error=%s cause=%r",
                _request_id(request),
                request.url.path,
                exc.message,
                exc.cause,
            )
            return error_response(status_code, ["internal error"])
        logger.info(
            "api: rejected request_id=%s path=%s status=%s error=%s",
            _request_id(request),
            request.url.path,
            status_code,
            exc.message,
        )
        return error_response(status_code, [exc.message])

    @app.exception_handler(HTTPException)
    def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "api: internal error request_id=%s path=%s error=%s",
                _request_id(request),
                request.url.path,
                exc.detail,
            )
            return error_response(exc.status_code, ["internal error"])
        return error_response(exc.status_code, [str(exc.detail)])

    @app.exception_handler(RequestValidationError)
    def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, _validation_messages(exc))

    @app.exception_handler(Exception)
    def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "api: unhandled error request_id=%s path=%s",
            _request_id(request),
            request.url.path,
        )
        return error_response(500, ["internal error"])
