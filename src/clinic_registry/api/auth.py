"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, status

from ..services.users import UserService
from .dependencies import get_user_service
from .schemas import LoginRequest, LoginResponse, ProblemDetails

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Login successful"},
        400: {"model": ProblemDetails, "description": "Malformed email or empty password"},
        401: {"model": ProblemDetails, "description": "Invalid credentials"},
    },
)
def login(
    login_data: LoginRequest,
    users: UserService = Depends(get_user_service),
) -> LoginResponse:
    """
    Exchange email and password for a short-lived bearer token.

    Unknown emails and wrong passwords get the same response.
    """
    result = users.login(login_data.email, login_data.password)
    return LoginResponse.model_validate(result)
