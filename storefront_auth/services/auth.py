from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
import logging
import re
import secrets
from typing import Callable, Optional

from storefront_auth.config import AuthMode, Settings, resolve_auth_mode
from storefront_auth.errors import (
    InvalidInput,
    InvalidOrExpiredCode,
    InvalidPhone,
    ProviderUnavailable,
    RateLimited,
    Unauthorized,
)
from storefront_auth.services.admin import AdminPolicy
from storefront_auth.services.otp import OtpStore, utcnow
from storefront_auth.services.phone import mask_phone, normalize_phone
from storefront_auth.services.rate_limit import RateLimiter
from storefront_auth.services.sms import SmsGateway, SmsSendError, build_sms_gateway
from storefront_auth.services.tokens import SessionIssuer, TokenError
from storefront_auth.services.users import UserIdentity, UserStore

LOGGER = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"[0-9]{6}")
DEV_PHONE = "+971000000000"


class AuthState(str, Enum):
    AWAITING_CODE = "awaiting_code"
    AWAITING_VERIFICATION = "awaiting_verification"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class CodeRequest:
    phone: str
    state: AuthState
    message: str
    expires_in_seconds: Optional[int] = None
    debug_code: Optional[str] = None


@dataclass(frozen=True)
class Authentication:
    token: str
    expires_at: datetime
    user: UserIdentity
    state: AuthState = AuthState.AUTHENTICATED


class AuthGateway:
    """Phone sign-in: request a code, verify it, read the session back.

    Holds no per-client state. Mutable data lives in the stores handed in at
    construction.
    """

    def __init__(
        self,
        *,
        sms: SmsGateway,
        rate_limiter: RateLimiter,
        users: UserStore,
        issuer: SessionIssuer,
        admin_policy: AdminPolicy,
        default_country_code: str,
        mode: AuthMode = AuthMode.OTP,
        code_ttl: Optional[timedelta] = None,
        dev_as_admin: bool = False,
    ) -> None:
        self.sms = sms
        self.rate_limiter = rate_limiter
        self.users = users
        self.issuer = issuer
        self.admin_policy = admin_policy
        self.default_country_code = default_country_code
        self.mode = mode
        self.code_ttl = code_ttl
        self.dev_as_admin = dev_as_admin

    async def request_code(self, raw_phone: str | int | None) -> CodeRequest:
        phone = normalize_phone(raw_phone, self.default_country_code)
        limit = self.rate_limiter.hit(phone)
        if not limit.allowed:
            raise RateLimited(limit.retry_after_seconds)
        try:
            outcome = await self.sms.send(phone)
        except SmsSendError as exc:
            self.rate_limiter.release(limit.reservation_id)
            LOGGER.error("OTP send failed phone=%s: %s", mask_phone(phone), exc)
            raise ProviderUnavailable() from exc
        except BaseException:
            self.rate_limiter.release(limit.reservation_id)
            raise
        if outcome.dry_run:
            message = "OTP generated"
            expires_in = int(self.code_ttl.total_seconds()) if self.code_ttl else None
        else:
            message = "OTP sent"
            expires_in = None
        return CodeRequest(
            phone=phone,
            state=AuthState.AWAITING_VERIFICATION,
            message=message,
            expires_in_seconds=expires_in,
            debug_code=outcome.code,
        )

    async def verify_code(
        self, raw_phone: str | int | None, raw_code: str | int | None
    ) -> Authentication:
        try:
            phone = normalize_phone(raw_phone, self.default_country_code)
        except InvalidPhone as exc:
            raise InvalidInput() from exc
        code = str(raw_code or "").strip()
        if not CODE_PATTERN.fullmatch(code):
            raise InvalidInput()

        try:
            approved = await self.sms.check(phone, code)
        except SmsSendError as exc:
            LOGGER.error("OTP check failed phone=%s: %s", mask_phone(phone), exc)
            raise ProviderUnavailable() from exc
        if not approved:
            LOGGER.info("OTP rejected phone=%s", mask_phone(phone))
            raise InvalidOrExpiredCode()

        user, existed = self.users.resolve_or_create(phone)
        if not existed:
            LOGGER.info("Created user id=%s phone=%s", user.id, mask_phone(phone))
        user = self.apply_admin_elevation(user)
        issued = self.issuer.issue(user)
        return Authentication(token=issued.token, expires_at=issued.expires_at, user=user)

    def apply_admin_elevation(self, user: UserIdentity) -> UserIdentity:
        """Promote allow-listed phones; never demotes."""
        if user.is_admin or not self.admin_policy.is_admin_phone(user.phone):
            return user
        LOGGER.warning("Elevating user id=%s to admin", user.id)
        return self.users.promote_to_admin(user.id)

    def current_session(self, token: str | None) -> UserIdentity:
        if self.mode is AuthMode.BYPASS:
            return self._bypass_identity()
        try:
            claims = self.issuer.verify(token or "")
        except TokenError as exc:
            raise Unauthorized() from exc
        user = self.users.get_user(claims.user_id)
        if user is None:
            raise Unauthorized()
        # Admin flag and profile state are read live, not taken from the token.
        return user

    def _bypass_identity(self) -> UserIdentity:
        phone = min(self.admin_policy.phones, default=DEV_PHONE)
        return UserIdentity(
            id=0,
            phone=phone,
            name="Dev User",
            email="",
            location="",
            is_admin=self.dev_as_admin,
            profile_complete=False,
        )


def _signing_secret(config: Settings) -> str:
    if config.jwt_secret:
        return config.jwt_secret
    if config.is_production:
        raise RuntimeError("JWT_SECRET must be configured in production")
    LOGGER.warning("JWT_SECRET is not set; sessions will not survive a restart")
    return secrets.token_urlsafe(32)


def build_auth_gateway(
    config: Settings, clock: Callable[[], datetime] = utcnow
) -> AuthGateway:
    mode = resolve_auth_mode(config)
    if mode is AuthMode.BYPASS:
        LOGGER.warning(
            "AUTH_MODE=bypass: every session resolves to the dev %s",
            "admin" if config.dev_as_admin else "user",
        )
    store = OtpStore(max_attempts=config.otp_max_attempts, clock=clock)
    sms = build_sms_gateway(config, store)
    LOGGER.info("SMS gateway mode=%s", sms.mode)
    return AuthGateway(
        sms=sms,
        rate_limiter=RateLimiter(max_per_window=config.otp_max_per_hour, clock=clock),
        users=UserStore(clock=clock),
        issuer=SessionIssuer(
            _signing_secret(config),
            ttl=timedelta(seconds=config.token_ttl_seconds),
            algorithm=config.jwt_algorithm,
            clock=clock,
        ),
        admin_policy=AdminPolicy(config.admin_phones, config.default_country_code),
        default_country_code=config.default_country_code,
        mode=mode,
        code_ttl=timedelta(minutes=config.otp_ttl_minutes),
        dev_as_admin=config.dev_as_admin,
    )
