from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import logging
from typing import Callable, Optional, Protocol

import httpx

from storefront_auth.config import Settings
from storefront_auth.services.otp import OtpStore, generate_code
from storefront_auth.services.phone import mask_phone

LOGGER = logging.getLogger(__name__)

TWILIO_VERIFY_BASE_URL = "https://verify.twilio.com/v2"


class SmsSendError(RuntimeError):
    pass


@dataclass(frozen=True)
class SendOutcome:
    dry_run: bool
    code: Optional[str] = None


class SmsGateway(Protocol):
    mode: str

    async def send(self, phone: str) -> SendOutcome:
        ...

    async def check(self, phone: str, code: str) -> bool:
        ...


class TwilioVerifyGateway:
    """Twilio Verify owns the code; nothing is stored on our side."""

    mode = "provider"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        service_sid: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._auth = (account_sid, auth_token)
        self._service_url = f"{TWILIO_VERIFY_BASE_URL}/Services/{service_sid}"
        self._timeout = timeout_seconds
        self._transport = transport

    async def send(self, phone: str) -> SendOutcome:
        response = await self._post("/Verifications", {"To": phone, "Channel": "sms"})
        if response.status_code >= 400:
            LOGGER.error(
                "Twilio Verify send failed to=%s status=%s response=%s",
                mask_phone(phone),
                response.status_code,
                response.text,
            )
            raise SmsSendError("Failed to send OTP SMS")
        LOGGER.info("OTP SMS requested via Twilio Verify to=%s", mask_phone(phone))
        return SendOutcome(dry_run=False)

    async def check(self, phone: str, code: str) -> bool:
        response = await self._post("/VerificationCheck", {"To": phone, "Code": code})
        if response.status_code == 404:
            # No pending verification: never requested, expired or already approved.
            return False
        if response.status_code in (401, 403) or response.status_code >= 500:
            # Bad credentials or service SID, not a wrong code.
            LOGGER.error(
                "Twilio Verify check failed to=%s status=%s",
                mask_phone(phone),
                response.status_code,
            )
            raise SmsSendError("Failed to check OTP")
        if response.status_code >= 400:
            LOGGER.warning(
                "Twilio Verify rejected check to=%s status=%s response=%s",
                mask_phone(phone),
                response.status_code,
                response.text,
            )
            return False
        try:
            status = response.json().get("status")
        except ValueError as exc:
            raise SmsSendError("Unreadable Twilio Verify response") from exc
        return status == "approved"

    async def _post(self, path: str, data: dict) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                auth=self._auth, timeout=self._timeout, transport=self._transport
            ) as client:
                return await client.post(f"{self._service_url}{path}", data=data)
        except httpx.HTTPError as exc:
            raise SmsSendError("Failed to reach Twilio Verify API") from exc


class LocalSmsGateway:
    """Dry-run gateway: codes are generated and kept in the OTP store."""

    mode = "dry_run"

    def __init__(
        self,
        store: OtpStore,
        ttl: timedelta,
        expose_code: bool = False,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._expose_code = expose_code
        self._code_factory = code_factory

    async def send(self, phone: str) -> SendOutcome:
        code = self._code_factory()
        record = self._store.put(phone, code, self._ttl)
        if self._expose_code:
            LOGGER.info(
                "DEV OTP phone=%s code=%s expires=%s",
                phone,
                code,
                record.expires_at.isoformat(),
            )
            return SendOutcome(dry_run=True, code=code)
        LOGGER.info("OTP generated (dry run) phone=%s", mask_phone(phone))
        return SendOutcome(dry_run=True)

    async def check(self, phone: str, code: str) -> bool:
        return self._store.consume_latest(phone, code) is not None


def build_sms_gateway(config: Settings, store: OtpStore) -> SmsGateway:
    if config.twilio_configured and not config.sms_dry_run:
        return TwilioVerifyGateway(
            config.twilio_account_sid,
            config.twilio_auth_token,
            config.twilio_verify_service_sid,
            timeout_seconds=config.sms_timeout_seconds,
        )
    if config.is_production:
        LOGGER.warning("Twilio Verify disabled in production; OTPs stay local")
    return LocalSmsGateway(
        store,
        ttl=timedelta(minutes=config.otp_ttl_minutes),
        expose_code=config.expose_debug_code,
    )
