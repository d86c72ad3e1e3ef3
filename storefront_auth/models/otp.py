from sqlalchemy import Column, DateTime, Index, Integer, String

from storefront_auth.database import Base


class OtpEntry(Base):
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True)
    phone = Column(String(16), nullable=False)
    code = Column(String(6), nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_otp_phone_created_at", "phone", "created_at"),
        Index("ix_otp_expires_at", "expires_at"),
    )
