"""Account management routes.

Listing is for admins and moderators, lookup is open to any authenticated
caller, profile updates are for the owner or an admin, and role assignment
is admin only.
"""

from fastapi import APIRouter, Query

from otpgate.infrastructure.api.dependencies import (
    AdminIdentity,
    AuthServiceDep,
    CurrentIdentity,
)
from otpgate.infrastructure.api.schemas import (
    AccountListResponse,
    AssignRolesRequest,
    ErrorResponse,
    ProfileResponse,
    UpdateProfileRequest,
)

router = APIRouter()


@router.get(
    "",
    response_model=AccountListResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Caller is neither admin nor moderator"},
    },
)
async def list_accounts(
    identity: CurrentIdentity,
    service: AuthServiceDep,
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(25, ge=1, le=100, description="Items per page"),
) -> AccountListResponse:
    """List account profiles, oldest first."""
    profiles = await service.list_accounts(
        identity, offset=(page - 1) * page_size, limit=page_size
    )
    return AccountListResponse(
        items=[ProfileResponse.model_validate(profile) for profile in profiles],
        page=page,
        page_size=page_size,
    )


@router.get(
    "/{account_id}",
    response_model=ProfileResponse,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}},
)
async def get_account(
    account_id: str,
    identity: CurrentIdentity,
    service: AuthServiceDep,
) -> ProfileResponse:
    """Get the public profile of an account."""
    profile = await service.get_account(identity, account_id)
    return ProfileResponse.model_validate(profile)


@router.patch(
    "/{account_id}",
    response_model=ProfileResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Blank display name"},
        403: {"model": ErrorResponse, "description": "Caller is neither owner nor admin"},
        404: {"model": ErrorResponse, "description": "Account not found"},
    },
)
async def update_profile(
    account_id: str,
    request: UpdateProfileRequest,
    identity: CurrentIdentity,
    service: AuthServiceDep,
) -> ProfileResponse:
    """Change the display name of an account."""
    profile = await service.update_profile(identity, account_id, request.name)
    return ProfileResponse.model_validate(profile)


@router.put(
    "/{account_id}/roles",
    response_model=ProfileResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Empty or unknown role set"},
        403: {"model": ErrorResponse, "description": "Caller is not an admin"},
        404: {"model": ErrorResponse, "description": "Account not found"},
    },
)
async def assign_roles(
    account_id: str,
    request: AssignRolesRequest,
    admin: AdminIdentity,
    service: AuthServiceDep,
) -> ProfileResponse:
    """Replace the role set of an account."""
    profile = await service.assign_roles(admin, account_id, request.roles)
    return ProfileResponse.model_validate(profile)
