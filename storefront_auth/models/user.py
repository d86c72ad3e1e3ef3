from sqlalchemy import Boolean, Column, DateTime, Integer, String

from storefront_auth.database import Base


class UserEntry(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    phone = Column(String(16), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    location = Column(String(255), nullable=False, default="")
    is_admin = Column(Boolean, nullable=False, default=False)
    profile_complete = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
