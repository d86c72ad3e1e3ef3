from fastapi import APIRouter, Depends

from storefront_auth.dependencies import get_auth_gateway, get_current_user, to_http_exception
from storefront_auth.errors import AuthError
from storefront_auth.schemas.auth import (
    SendCodeRequest,
    SendCodeResponse,
    SessionResponse,
    UserPayload,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from storefront_auth.services.auth import AuthGateway
from storefront_auth.services.users import UserIdentity

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_payload(user: UserIdentity) -> UserPayload:
    return UserPayload(
        id=user.id,
        phone=user.phone,
        name=user.name,
        is_admin=user.is_admin,
        profile_complete=user.profile_complete,
    )


@router.post("/send-code", response_model=SendCodeResponse, response_model_exclude_none=True)
@router.post(
    "/send-otp",
    response_model=SendCodeResponse,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def send_code(
    payload: SendCodeRequest, gateway: AuthGateway = Depends(get_auth_gateway)
) -> SendCodeResponse:
    try:
        result = await gateway.request_code(payload.phone)
    except AuthError as exc:
        raise to_http_exception(exc) from exc
    return SendCodeResponse(
        message=result.message,
        phone=result.phone,
        expires_in_seconds=result.expires_in_seconds,
        debug_code=result.debug_code,
    )


@router.post("/verify-code", response_model=VerifyCodeResponse)
@router.post("/verify-otp", response_model=VerifyCodeResponse, include_in_schema=False)
async def verify_code(
    payload: VerifyCodeRequest, gateway: AuthGateway = Depends(get_auth_gateway)
) -> VerifyCodeResponse:
    try:
        result = await gateway.verify_code(payload.phone, payload.code)
    except AuthError as exc:
        raise to_http_exception(exc) from exc
    return VerifyCodeResponse(
        token=result.token,
        expires_at=result.expires_at,
        user=_user_payload(result.user),
    )


@router.get("/session", response_model=SessionResponse)
@router.get("/me", response_model=SessionResponse, include_in_schema=False)
def current_session(user: UserIdentity = Depends(get_current_user)) -> SessionResponse:
    return SessionResponse(user=_user_payload(user))
