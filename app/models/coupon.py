from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, Index
from datetime import datetime, timedelta
from app.database import Base

DEFAULT_VALIDITY = timedelta(days=30)


def default_expiry():
    return datetime.utcnow() + DEFAULT_VALIDITY


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), unique=True, index=True, nullable=False)  # stored upper-cased
    description = Column(Text)
    discount = Column(Float, default=0)
    expiry_date = Column(DateTime, default=default_expiry, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)  # admin controlled
    is_claimed = Column(Boolean, default=False, nullable=False)  # only the allocator flips this
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Allocation scans eligible coupons oldest first
    __table_args__ = (
        Index("ix_coupons_eligible", "is_active", "is_claimed", "created_at"),
    )
