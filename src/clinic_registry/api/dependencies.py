"""FastAPI dependencies: services, bearer authentication, path and paging parameters."""

from typing import Any, Dict, Optional
from urllib.parse import urlencode
from uuid import UUID

from fastapi import Depends, Query, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.errors import DomainError, UnauthorizedError
from ..core.ids import parse_uuid7
from ..services.clinics import ClinicService
from ..services.context import ServiceContext
from ..services.dentists import DentistService
from ..services.pagination import InvalidPageParameter, Page, PageRequest
from ..services.users import UserService
from .middleware import ProblemDetailsException, problem_type

HEADER_PAGE_LIMIT = "X-Page-Limit"
HEADER_NEXT_CURSOR = "X-Next-Cursor"

# auto_error is off so missing and malformed headers get distinct messages
bearer_scheme = HTTPBearer(auto_error=False)


def get_service_context(request: Request) -> ServiceContext:
    return request.app.state.service_context


def get_clinic_service(ctx: ServiceContext = Depends(get_service_context)) -> ClinicService:
    return ClinicService(ctx)


def get_dentist_service(ctx: ServiceContext = Depends(get_service_context)) -> DentistService:
    return DentistService(ctx)


def get_user_service(ctx: ServiceContext = Depends(get_service_context)) -> UserService:
    return UserService(ctx)


def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    users: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    """
    Require a valid access token and return its claims.

    Raises:
        UnauthorizedError: header missing, not a Bearer header, or token rejected
    """
    if credentials is None:
        if not request.headers.get("Authorization", "").strip():
            raise UnauthorizedError("missing bearer token")
        raise UnauthorizedError("invalid authorization header")

    try:
        return users.validate_access_token(credentials.credentials)
    except DomainError:
        raise UnauthorizedError("invalid token")


def invalid_parameter(detail: str) -> ProblemDetailsException:
    return ProblemDetailsException(
        status_code=status.HTTP_400_BAD_REQUEST,
        title="Invalid Parameter",
        detail=detail,
        type_uri=problem_type("invalid-parameter"),
    )


def parse_path_id(raw: str, param: str = "id") -> UUID:
    """Parse a path segment that must hold a UUIDv7."""
    parsed = parse_uuid7((raw or "").strip())
    if parsed is None:
        raise invalid_parameter(f'invalid parameter "{param}": must be a UUIDv7')
    return parsed


def get_page_request(
    limit: Optional[str] = Query(None, description="Page size"),
    cursor: Optional[str] = Query(None, description="Last id of the previous page"),
    ctx: ServiceContext = Depends(get_service_context),
) -> PageRequest:
    """Parse ``limit``/``cursor`` query parameters."""
    try:
        return PageRequest.from_raw(
            limit,
            cursor,
            default_limit=ctx.default_page_limit,
            max_limit=ctx.max_page_limit,
        )
    except InvalidPageParameter as exc:
        raise invalid_parameter(f'invalid parameter "{exc.param}": {exc.reason}')


def set_cursor_headers(request: Request, response: Response, page: Page) -> None:
    """Expose the page size and, when there is one, the next page location."""
    response.headers[HEADER_PAGE_LIMIT] = str(page.limit)
    response.headers[HEADER_NEXT_CURSOR] = ""
    response.headers["Link"] = ""
    if not page.next_cursor:
        return

    response.headers[HEADER_NEXT_CURSOR] = page.next_cursor
    query = dict(request.query_params)
    query["cursor"] = page.next_cursor
    query["limit"] = str(page.limit)
    next_url = f"{request.url.path}?{urlencode(query)}"
    response.headers["Link"] = f'<{next_url}>; rel="next"'
