import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from storefront_auth.config import AuthMode
from storefront_auth.dependencies import get_auth_gateway, get_current_user, require_admin
from storefront_auth.schemas.users import (
    Pagination,
    ProfileResponse,
    ProfileUpdate,
    UserListResponse,
)
from storefront_auth.services.auth import AuthGateway
from storefront_auth.services.users import UserIdentity, UserNotFound

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

_ROLE_FILTERS = {"admin": True, "user": False}
MAX_PAGE_SIZE = 100


def _to_response(user: UserIdentity) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        phone=user.phone,
        name=user.name,
        email=user.email,
        location=user.location,
        is_admin=user.is_admin,
        profile_complete=user.profile_complete,
    )


@router.get("", response_model=UserListResponse)
def list_users(
    q: Optional[str] = None,
    role: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    _: UserIdentity = Depends(require_admin),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> UserListResponse:
    page = max(1, page)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    users, total = gateway.users.list_users(
        query=q,
        is_admin=_ROLE_FILTERS.get((role or "").strip().lower()),
        page=page,
        limit=limit,
    )
    return UserListResponse(
        items=[_to_response(user) for user in users],
        pagination=Pagination(
            page=page, limit=limit, total=total, pages=math.ceil(total / limit)
        ),
    )


@router.get("/me", response_model=ProfileResponse)
def get_profile(user: UserIdentity = Depends(get_current_user)) -> ProfileResponse:
    return _to_response(user)


@router.patch("/me", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdate,
    user: UserIdentity = Depends(get_current_user),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> ProfileResponse:
    if gateway.mode is AuthMode.BYPASS:
        # The bypass identity has no stored row to update.
        LOGGER.warning("Profile update refused in AUTH_MODE=bypass")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "BypassMode",
                "message": "Profile updates need a signed-in user",
            },
        )
    try:
        updated = gateway.users.update_profile(
            user.id,
            name=payload.name,
            email=payload.email,
            location=payload.location,
        )
    except UserNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        ) from exc
    return _to_response(updated)
