"""Dentist API endpoints, both clinic-scoped links and the dentist itself."""

from typing import List

from fastapi import APIRouter, Depends, Request, Response, status

from ..services.dentists import DentistService
from ..services.pagination import PageRequest
from .dependencies import (
    get_dentist_service,
    get_page_request,
    parse_path_id,
    require_user,
    set_cursor_headers,
)
from .schemas import (
    ClinicDentistResponse,
    DentistCreateRequest,
    DentistResponse,
    DentistRolesRequest,
    DentistUpdateRequest,
    ProblemDetails,
)

router = APIRouter(
    prefix="/api/v1",
    tags=["dentists"],
    dependencies=[Depends(require_user)],
    responses={401: {"model": ProblemDetails, "description": "Missing or invalid token"}},
)


@router.post(
    "/clinics/{clinic_id}/dentists",
    response_model=ClinicDentistResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": ClinicDentistResponse, "description": "Existing link updated"},
        201: {"description": "Dentist linked to the clinic"},
        400: {"model": ProblemDetails, "description": "Validation error"},
        404: {"model": ProblemDetails, "description": "Clinic not found"},
        409: {"model": ProblemDetails, "description": "CPF belongs to a company"},
    },
)
def create_clinic_dentist(
    clinic_id: str,
    dentist_data: DentistCreateRequest,
    response: Response,
    dentists: DentistService = Depends(get_dentist_service),
) -> ClinicDentistResponse:
    """
    Link a dentist to a clinic, creating the dentist when the CPF is new.

    Posting a dentist that is already linked updates the supplied role
    flags and answers 200 instead of 201.
    """
    parsed_id = parse_path_id(clinic_id)
    view, created = dentists.create_or_attach(parsed_id, dentist_data.to_input())
    if not created:
        response.status_code = status.HTTP_200_OK
    return ClinicDentistResponse.model_validate(view)


@router.get(
    "/clinics/{clinic_id}/dentists",
    response_model=List[ClinicDentistResponse],
    responses={
        400: {"model": ProblemDetails, "description": "Invalid id, limit or cursor"},
        404: {"model": ProblemDetails, "description": "Clinic not found"},
    },
)
def list_clinic_dentists(
    clinic_id: str,
    request: Request,
    response: Response,
    page_request: PageRequest = Depends(get_page_request),
    dentists: DentistService = Depends(get_dentist_service),
) -> List[ClinicDentistResponse]:
    parsed_id = parse_path_id(clinic_id)
    page = dentists.list_for_clinic(
        parsed_id,
        limit=page_request.limit,
        cursor=str(page_request.cursor) if page_request.cursor else None,
    )
    set_cursor_headers(request, response, page)
    return [ClinicDentistResponse.model_validate(item) for item in page.items]


@router.patch(
    "/clinics/{clinic_id}/dentists/{dentist_id}",
    response_model=ClinicDentistResponse,
    responses={
        400: {"model": ProblemDetails, "description": "No role supplied"},
        404: {"model": ProblemDetails, "description": "Dentist not linked to this clinic"},
    },
)
def update_clinic_dentist(
    clinic_id: str,
    dentist_id: str,
    roles: DentistRolesRequest,
    dentists: DentistService = Depends(get_dentist_service),
) -> ClinicDentistResponse:
    view = dentists.update_roles(
        parse_path_id(clinic_id),
        parse_path_id(dentist_id, "dentist_id"),
        is_admin=roles.is_admin,
        is_legal_representative=roles.is_legal_representative,
    )
    return ClinicDentistResponse.model_validate(view)


@router.delete(
    "/clinics/{clinic_id}/dentists/{dentist_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        404: {"model": ProblemDetails, "description": "Dentist not linked to this clinic"},
        409: {"model": ProblemDetails, "description": "Last active clinic of the dentist"},
    },
)
def unlink_clinic_dentist(
    clinic_id: str,
    dentist_id: str,
    dentists: DentistService = Depends(get_dentist_service),
) -> Response:
    """End the link. A dentist's last active link cannot be ended here."""
    dentists.unlink(parse_path_id(clinic_id), parse_path_id(dentist_id, "dentist_id"))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/dentists/{dentist_id}",
    response_model=DentistResponse,
    responses={
        400: {"model": ProblemDetails, "description": "Validation error"},
        404: {"model": ProblemDetails, "description": "Dentist not found"},
    },
)
def update_dentist(
    dentist_id: str,
    dentist_data: DentistUpdateRequest,
    dentists: DentistService = Depends(get_dentist_service),
) -> DentistResponse:
    summary = dentists.update_dentist(parse_path_id(dentist_id), dentist_data.to_input())
    return DentistResponse.model_validate(summary)


@router.delete(
    "/dentists/{dentist_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ProblemDetails, "description": "Dentist not found"}},
)
def delete_dentist(
    dentist_id: str,
    dentists: DentistService = Depends(get_dentist_service),
) -> Response:
    """Soft-delete a dentist and end all of its clinic links."""
    dentists.delete_dentist(parse_path_id(dentist_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
