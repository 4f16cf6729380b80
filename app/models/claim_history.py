from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from app.database import Base


class ClaimHistory(Base):
    """One row per successful claim. Rows are never updated or deleted."""

    __tablename__ = "claim_history"

    id = Column(Integer, primary_key=True, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=False, index=True)
    user_email = Column(String(255), nullable=True, index=True)  # None for anonymous claims
    ip_address = Column(String(64), nullable=False)
    browser_info = Column(String(512))
    session_id = Column(String(64))
    claimed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    coupon = relationship("Coupon")

    __table_args__ = (
        Index("ix_claim_history_ip_claimed_at", "ip_address", "claimed_at"),
        Index("ix_claim_history_session_claimed_at", "session_id", "claimed_at"),
    )
