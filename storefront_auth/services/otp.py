from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Callable

from sqlalchemy import delete, select

from storefront_auth.database import session_scope
from storefront_auth.models.otp import OtpEntry
from storefront_auth.services.locks import KeyedLocks
from storefront_auth.services.phone import mask_phone

LOGGER = logging.getLogger(__name__)

OTP_LENGTH = 6


@dataclass(frozen=True)
class OtpRecord:
    phone: str
    code: str
    expires_at: datetime
    created_at: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_code(length: int = OTP_LENGTH) -> str:
    return f"{secrets.randbelow(10**length):0{length}d}"


class OtpStore:
    """Outstanding one-time codes, at most one usable per phone.

    ``put`` replaces every code held for the phone. ``consume_latest`` only
    ever looks at the newest unexpired code and wipes all codes for the phone
    once it matches, so a superseded code can never be replayed.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._max_attempts = max_attempts
        self._clock = clock
        self._locks = KeyedLocks()

    def put(self, phone: str, code: str, ttl: timedelta) -> OtpRecord:
        now = self._clock()
        record = OtpRecord(
            phone=phone, code=code, expires_at=now + ttl, created_at=now
        )
        with self._locks.hold(phone), session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.expires_at <= now))
            session.execute(delete(OtpEntry).where(OtpEntry.phone == phone))
            session.add(
                OtpEntry(
                    phone=phone,
                    code=code,
                    attempts=0,
                    expires_at=record.expires_at,
                    created_at=now,
                )
            )
        return record

    def consume_latest(self, phone: str, code: str) -> OtpRecord | None:
        now = self._clock()
        with self._locks.hold(phone), session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.expires_at <= now))
            entry = session.execute(
                select(OtpEntry)
                .where(OtpEntry.phone == phone, OtpEntry.expires_at > now)
                .order_by(OtpEntry.created_at.desc(), OtpEntry.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            if entry is None:
                return None

            if not secrets.compare_digest(entry.code, code):
                attempts = (entry.attempts or 0) + 1
                if attempts >= self._max_attempts:
                    LOGGER.warning(
                        "OTP attempts exhausted phone=%s", mask_phone(phone)
                    )
                    session.execute(delete(OtpEntry).where(OtpEntry.phone == phone))
                else:
                    entry.attempts = attempts
                return None

            record = OtpRecord(
                phone=entry.phone,
                code=entry.code,
                expires_at=as_utc(entry.expires_at),
                created_at=as_utc(entry.created_at),
            )
            session.execute(delete(OtpEntry).where(OtpEntry.phone == phone))
            return record
