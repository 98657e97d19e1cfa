"""RFC 9457 Problem Details responses for every API failure."""

from typing import Callable, Dict, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.errors import DomainError, ErrorKind
from ..utils.logging_config import log_exception

PROBLEM_CONTENT_TYPE = "application/problem+json"
PROBLEM_TYPE_BASE = "https://clinic-registry.dev/problems"


def problem_type(slug: str) -> str:
    return f"{PROBLEM_TYPE_BASE}/{slug}"


# ErrorKind -> (status, problem type slug, title)
DOMAIN_ERROR_PROBLEMS = {
    ErrorKind.VALIDATION: (status.HTTP_400_BAD_REQUEST, "validation-error", "Validation Error"),
    ErrorKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "not-found", "Not Found"),
    ErrorKind.CONFLICT: (status.HTTP_409_CONFLICT, "conflict", "Conflict"),
    ErrorKind.UNAUTHORIZED: (status.HTTP_401_UNAUTHORIZED, "unauthorized", "Unauthorized"),
}


class ProblemDetailsException(HTTPException):
    """HTTPException that carries RFC 9457 Problem Details fields."""

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.title = title
        self.type_uri = type_uri or "about:blank"


def create_problem_response(
    request: Request,
    status_code: int,
    title: str,
    detail: Optional[str] = None,
    type_uri: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Create a JSON response in RFC 9457 Problem Details format."""
    problem = {
        "type": type_uri or "about:blank",
        "title": title,
        "status": status_code,
    }
    if detail:
        problem["detail"] = detail
    problem["instance"] = request.url.path

    return JSONResponse(
        status_code=status_code,
        content=problem,
        headers=headers,
        media_type=PROBLEM_CONTENT_TYPE,
    )


def _get_default_title(status_code: int) -> str:
    """Get default title for HTTP status codes."""
    titles = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        409: "Conflict",
        415: "Unsupported Media Type",
        422: "Unprocessable Entity",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }
    return titles.get(status_code, "HTTP Error")


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "invalid request body: " + "; ".join(parts)


async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    status_code, slug, title = DOMAIN_ERROR_PROBLEMS[exc.kind]
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.UNAUTHORIZED else None
    return create_problem_response(
        request, status_code, title, exc.message, problem_type(slug), headers
    )


async def handle_problem_exception(
    request: Request, exc: ProblemDetailsException
) -> JSONResponse:
    return create_problem_response(
        request, exc.status_code, exc.title, exc.detail, exc.type_uri, exc.headers
    )


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc, ProblemDetailsException):
        return await handle_problem_exception(request, exc)
    return create_problem_response(
        request,
        exc.status_code,
        _get_default_title(exc.status_code),
        str(exc.detail) if exc.detail else None,
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return create_problem_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "Validation Error",
        _format_validation_errors(exc),
        problem_type("validation-error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Route domain, HTTP and request-validation errors to Problem Details."""
    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)


class ProblemDetailsMiddleware(BaseHTTPMiddleware):
    """Turns anything the exception handlers did not claim into a 500 problem."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            log_exception(
                'api', exc, {"method": request.method, "path": request.url.path}
            )
            return create_problem_response(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal Server Error",
                "internal server error",
                problem_type("internal-error"),
            )
