"""Clinic API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Request, Response, status

from ..services.clinics import ClinicService
from ..services.pagination import PageRequest
from .dependencies import (
    get_clinic_service,
    get_page_request,
    parse_path_id,
    require_user,
    set_cursor_headers,
)
from .schemas import (
    ClinicCreateRequest,
    ClinicDetailsResponse,
    ClinicResponse,
    ClinicUpdateRequest,
    ProblemDetails,
)

router = APIRouter(
    prefix="/api/v1/clinics",
    tags=["clinics"],
    dependencies=[Depends(require_user)],
    responses={401: {"model": ProblemDetails, "description": "Missing or invalid token"}},
)


@router.get(
    "",
    response_model=List[ClinicResponse],
    responses={
        200: {"description": "One page of active clinics, oldest first"},
        400: {"model": ProblemDetails, "description": "Invalid limit or cursor"},
    },
)
def list_clinics(
    request: Request,
    response: Response,
    page_request: PageRequest = Depends(get_page_request),
    clinics: ClinicService = Depends(get_clinic_service),
) -> List[ClinicResponse]:
    """
    List active clinics.

    The next page, if any, is announced in the ``X-Next-Cursor`` and
    ``Link`` headers.
    """
    page = clinics.list_clinics(
        limit=page_request.limit,
        cursor=str(page_request.cursor) if page_request.cursor else None,
    )
    set_cursor_headers(request, response, page)
    return [ClinicResponse.model_validate(item) for item in page.items]


@router.post(
    "",
    response_model=ClinicDetailsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Clinic created"},
        400: {"model": ProblemDetails, "description": "Validation error"},
        409: {"model": ProblemDetails, "description": "Tax id already used"},
    },
)
def create_clinic(
    clinic_data: ClinicCreateRequest,
    clinics: ClinicService = Depends(get_clinic_service),
) -> ClinicDetailsResponse:
    """
    Create a clinic with its company record and at least one bank account.
    """
    details = clinics.create_clinic(clinic_data.to_input())
    return ClinicDetailsResponse.model_validate(details)


@router.get(
    "/{clinic_id}",
    response_model=ClinicDetailsResponse,
    responses={
        400: {"model": ProblemDetails, "description": "Invalid id"},
        404: {"model": ProblemDetails, "description": "Clinic not found"},
    },
)
def get_clinic(
    clinic_id: str,
    clinics: ClinicService = Depends(get_clinic_service),
) -> ClinicDetailsResponse:
    details = clinics.get_clinic(parse_path_id(clinic_id))
    return ClinicDetailsResponse.model_validate(details)


@router.patch(
    "/{clinic_id}",
    response_model=ClinicResponse,
    responses={
        400: {"model": ProblemDetails, "description": "Validation error"},
        404: {"model": ProblemDetails, "description": "Clinic or bank account not found"},
    },
)
def update_clinic(
    clinic_id: str,
    clinic_data: ClinicUpdateRequest,
    clinics: ClinicService = Depends(get_clinic_service),
) -> ClinicResponse:
    """
    Partially update a clinic.

    Bank accounts listed in ``bank_accounts`` are added and those in
    ``bank_account_ids_to_remove`` are removed in the same transaction.
    The clinic must keep at least one active account afterwards.
    """
    parsed_id = parse_path_id(clinic_id)
    summary = clinics.update_clinic(parsed_id, clinic_data.to_input())
    return ClinicResponse.model_validate(summary)


@router.delete(
    "/{clinic_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        400: {"model": ProblemDetails, "description": "Invalid id"},
        404: {"model": ProblemDetails, "description": "Clinic not found"},
    },
)
def delete_clinic(
    clinic_id: str,
    clinics: ClinicService = Depends(get_clinic_service),
) -> Response:
    """Soft-delete a clinic and end all of its dentist links."""
    clinics.delete_clinic(parse_path_id(clinic_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
