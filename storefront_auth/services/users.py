from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from storefront_auth.database import session_scope
from storefront_auth.models.user import UserEntry
from storefront_auth.services.otp import utcnow


class UserNotFound(LookupError):
    pass


@dataclass(frozen=True)
class UserIdentity:
    id: int
    phone: str
    name: str
    email: str
    location: str
    is_admin: bool
    profile_complete: bool


def _is_profile_complete(entry: UserEntry) -> bool:
    return bool((entry.name or "").strip() and (entry.location or "").strip())


def _touch(entry: UserEntry, now: datetime) -> None:
    entry.profile_complete = _is_profile_complete(entry)
    entry.updated_at = now


class UserStore:
    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock

    def resolve_or_create(self, phone: str) -> tuple[UserIdentity, bool]:
        """Return the user for ``phone``, creating it on first sign-in.

        The flag is True when the user already existed.
        """
        existing = self.get_by_phone(phone)
        if existing is not None:
            return existing, True
        now = self._clock()
        try:
            with session_scope() as session:
                entry = UserEntry(
                    phone=phone,
                    name="",
                    email="",
                    location="",
                    is_admin=False,
                    created_at=now,
                    updated_at=now,
                )
                _touch(entry, now)
                session.add(entry)
                session.flush()
                return self._to_identity(entry), False
        except IntegrityError:
            # Another request created the same phone first.
            existing = self.get_by_phone(phone)
            if existing is None:
                raise
            return existing, True

    def promote_to_admin(self, user_id: int) -> UserIdentity:
        with session_scope() as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                raise UserNotFound(user_id)
            if not entry.is_admin:
                entry.is_admin = True
                _touch(entry, self._clock())
            session.flush()
            return self._to_identity(entry)

    def update_profile(
        self,
        user_id: int,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        location: Optional[str] = None,
    ) -> UserIdentity:
        with session_scope() as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                raise UserNotFound(user_id)
            if name is not None:
                entry.name = name.strip()
            if email is not None:
                entry.email = email.strip().lower()
            if location is not None:
                entry.location = location.strip()
            _touch(entry, self._clock())
            session.flush()
            return self._to_identity(entry)

    def list_users(
        self,
        *,
        query: Optional[str] = None,
        is_admin: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[UserIdentity], int]:
        """Return one page of users, newest first, and the total match count.

        ``query`` is a case-insensitive substring of name, phone or email.
        """
        conditions = []
        if query and query.strip():
            pattern = f"%{query.strip()}%"
            conditions.append(
                or_(
                    UserEntry.name.ilike(pattern),
                    UserEntry.phone.ilike(pattern),
                    UserEntry.email.ilike(pattern),
                )
            )
        if is_admin is not None:
            conditions.append(UserEntry.is_admin == is_admin)
        with session_scope() as session:
            total = session.execute(
                select(func.count(UserEntry.id)).where(*conditions)
            ).scalar_one()
            entries = session.execute(
                select(UserEntry)
                .where(*conditions)
                .order_by(UserEntry.created_at.desc(), UserEntry.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).scalars().all()
            return [self._to_identity(entry) for entry in entries], total

    def get_user(self, user_id: int) -> UserIdentity | None:
        with session_scope() as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                return None
            return self._to_identity(entry)

    def get_by_phone(self, phone: str) -> UserIdentity | None:
        with session_scope() as session:
            entry = session.execute(
                select(UserEntry).where(UserEntry.phone == phone)
            ).scalar_one_or_none()
            if entry is None:
                return None
            return self._to_identity(entry)

    def _to_identity(self, entry: UserEntry) -> UserIdentity:
        return UserIdentity(
            id=entry.id,
            phone=entry.phone,
            name=entry.name or "",
            email=entry.email or "",
            location=entry.location or "",
            is_admin=bool(entry.is_admin),
            profile_complete=bool(entry.profile_complete),
        )
