from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from storefront_auth.config import settings
from storefront_auth.errors import AuthError, Forbidden
from storefront_auth.services.auth import AuthGateway, build_auth_gateway
from storefront_auth.services.users import UserIdentity


@lru_cache(maxsize=1)
def get_auth_gateway() -> AuthGateway:
    return build_auth_gateway(settings)


def to_http_exception(exc: AuthError) -> HTTPException:
    headers = None
    retry_after = getattr(exc, "retry_after_seconds", None)
    if retry_after is not None:
        headers = {"Retry-After": str(retry_after)}
    elif exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(
        status_code=exc.status_code,
        detail={"error": exc.code, "message": str(exc)},
        headers=headers,
    )


def bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(
    token: str | None = Depends(bearer_token),
    gateway: AuthGateway = Depends(get_auth_gateway),
) -> UserIdentity:
    try:
        return gateway.current_session(token)
    except AuthError as exc:
        raise to_http_exception(exc) from exc


def require_admin(user: UserIdentity = Depends(get_current_user)) -> UserIdentity:
    if not user.is_admin:
        raise to_http_exception(Forbidden())
    return user
