"""Pydantic schemas for account management endpoints."""

from pydantic import BaseModel, Field

from otpgate.infrastructure.api.schemas.auth_schemas import ProfileResponse


class AssignRolesRequest(BaseModel):
    """Request body for replacing an account's roles."""

    roles: list[str] = Field(
        ...,
        description="New role set; a non-empty subset of user, admin, moderator",
    )


class UpdateProfileRequest(BaseModel):
    """Request body for changing an account's display name."""

    name: str = Field(..., min_length=1, max_length=255, description="New display name")


class AccountListResponse(BaseModel):
    """One page of account profiles, oldest first."""

    items: list[ProfileResponse] = Field(..., description="Account profiles on this page")
    page: int = Field(..., description="Page number (1-indexed)")
    page_size: int = Field(..., description="Maximum items per page")
