"""
JSON error rendering.

Every error body carries ``message`` (what clients display) alongside
problem-detail fields (``type``, ``title``, ``status``, ``detail``,
``instance``, ``code``).
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException, RepositoryException

logger = logging.getLogger(__name__)


def _title_from_status(status_code: int) -> str:
    mapping = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        409: "Conflict",
        500: "Internal Server Error",
    }
    return mapping.get(status_code, "Error")


def _problem(
    *,
    status: int,
    message: str,
    title: Optional[str] = None,
    instance: Optional[str] = None,
    type_: str = "about:blank",
    code: Optional[str] = None,
    errors: Optional[Any] = None,
) -> Dict[str, Any]:
    problem: Dict[str, Any] = {
        "message": message,
        "type": type_,
        "title": title or _title_from_status(status),
        "status": status,
        "detail": message,
        "instance": instance or "",
    }
    if code:
        problem["code"] = code
    if errors:
        problem["errors"] = errors
    return problem


def _parse_detail(detail: Any) -> tuple[Optional[str], Optional[str], Optional[Any]]:
    if isinstance(detail, dict):
        code = detail.get("code") if isinstance(detail.get("code"), str) else None
        message = detail.get("message") or detail.get("detail")
        detail_text = message if isinstance(message, str) else None
        errors = detail.get("details") or detail.get("errors")
        return detail_text, code, errors
    if isinstance(detail, str):
        return detail, None, None
    if detail is None:
        return None, None, None
    return str(detail), None, None


def _validation_errors(raw_errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    issues = []
    for error in raw_errors:
        # Drop the leading "body"/"query"/"path" marker FastAPI prepends
        loc = [str(part) for part in error.get("loc", ())][1:]
        issues.append({"path": ".".join(loc), "message": str(error.get("msg", ""))})
    return issues


def register_error_handlers(app: FastAPI) -> None:
    def http_response(
        request: Request, status_code: int, detail: Any, headers: Any
    ) -> JSONResponse:
        detail_text, code, errors = _parse_detail(detail)
        if status_code == 404 and detail_text in (None, "Not Found"):
            detail_text = f"Route not found: {request.url.path}"
        problem = _problem(
            status=status_code,
            message=detail_text or _title_from_status(status_code),
            instance=request.url.path,
            code=code,
            errors=jsonable_encoder(errors) if errors else None,
        )
        return JSONResponse(problem, status_code=status_code, headers=headers)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        http_exc = exc.to_http_exception()
        if http_exc.status_code >= 500:
            logger.error("Service failure on %s: %s", request.url.path, exc.message)
        return http_response(request, http_exc.status_code, http_exc.detail, http_exc.headers)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return http_response(request, exc.status_code, exc.detail, exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return http_response(request, exc.status_code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        problem = _problem(
            status=400,
            message="Validation failed",
            instance=request.url.path,
            code="validation_error",
            errors=_validation_errors(jsonable_encoder(exc.errors())),
        )
        return JSONResponse(problem, status_code=400)

    @app.exception_handler(RepositoryException)
    async def repository_exception_handler(
        request: Request, exc: RepositoryException
    ) -> JSONResponse:
        logger.error("Storage failure on %s: %s", request.url.path, exc, exc_info=exc)
        return JSONResponse(
            _problem(status=500, message="Internal server error", instance=request.url.path),
            status_code=500,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
        problem = _problem(
            status=500,
            message="Internal server error",
            instance=request.url.path,
            code="internal_server_error",
        )
        return JSONResponse(problem, status_code=500)
