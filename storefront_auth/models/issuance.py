from sqlalchemy import Column, DateTime, Index, Integer, String

from storefront_auth.database import Base


class OtpIssuance(Base):
    """One row per code handed out, used to count the rolling send window."""

    __tablename__ = "otp_issuances"

    id = Column(Integer, primary_key=True)
    phone = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_otp_issuance_phone_created_at", "phone", "created_at"),
    )
