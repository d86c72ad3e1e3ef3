from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Callable

from sqlalchemy import delete, func, select

from storefront_auth.database import session_scope
from storefront_auth.models.issuance import OtpIssuance
from storefront_auth.services.locks import KeyedLocks
from storefront_auth.services.otp import as_utc, utcnow
from storefront_auth.services.phone import mask_phone

LOGGER = logging.getLogger(__name__)

WINDOW = timedelta(minutes=60)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int
    current_value: int
    reservation_id: int | None = None


class RateLimiter:
    """Sliding one-hour ceiling on codes issued per phone.

    ``hit`` counts and reserves a slot in the same transaction while holding
    the phone's lock, so two concurrent requests cannot both take the last
    slot. A reservation whose code was never delivered is handed back with
    ``release``.
    """

    def __init__(
        self,
        max_per_window: int = 5,
        window: timedelta = WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._max_per_window = max_per_window
        self._window = window
        self._clock = clock
        self._locks = KeyedLocks()

    def hit(self, phone: str) -> RateLimitResult:
        now = self._clock()
        window_start = now - self._window
        with self._locks.hold(phone), session_scope() as session:
            session.execute(
                delete(OtpIssuance).where(OtpIssuance.created_at <= window_start)
            )
            count, oldest = session.execute(
                select(func.count(OtpIssuance.id), func.min(OtpIssuance.created_at))
                .where(OtpIssuance.phone == phone)
            ).one()
            if count >= self._max_per_window:
                frees_at = as_utc(oldest) + self._window if oldest else now + self._window
                retry_after = int((frees_at - now).total_seconds())
                LOGGER.info(
                    "OTP rate limit reached phone=%s count=%s", mask_phone(phone), count
                )
                return RateLimitResult(
                    allowed=False,
                    retry_after_seconds=max(retry_after, 1),
                    current_value=count,
                )
            entry = OtpIssuance(phone=phone, created_at=now)
            session.add(entry)
            session.flush()
            return RateLimitResult(
                allowed=True,
                retry_after_seconds=0,
                current_value=count + 1,
                reservation_id=entry.id,
            )

    def allow(self, phone: str) -> bool:
        return self.hit(phone).allowed

    def release(self, reservation_id: int | None) -> None:
        if reservation_id is None:
            return
        with session_scope() as session:
            session.execute(delete(OtpIssuance).where(OtpIssuance.id == reservation_id))
