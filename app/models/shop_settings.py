from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String
from sqlalchemy.sql import func

from app.core.database import Base


class ShopSettings(Base):
    """Single-row store for the shop calendar (hours, closed days, date exceptions)."""

    __tablename__ = "shop_settings"

    id = Column(Integer, primary_key=True, index=True)

    # Default working window
    start_hour = Column(Integer, nullable=False, default=9)
    end_hour = Column(Integer, nullable=False, default=19)
    slot_interval_minutes = Column(Integer, nullable=False, default=30)

    # Weekly closure, as WeekDay values (Monday=0)
    closed_days = Column(JSON, nullable=False, default=list)

    # Default lunch window (optional)
    lunch_start_hour = Column(Integer, nullable=True)
    lunch_end_hour = Column(Integer, nullable=True)

    # Public holiday closure
    close_on_holidays = Column(Boolean, nullable=False, default=False)
    holiday_country = Column(String(3), nullable=True)

    # {"YYYY-MM-DD": {"start_hour": .., "end_hour": .., "closed": .., ...}}
    exceptions = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return (
            f"<ShopSettings(hours={self.start_hour}-{self.end_hour}, "
            f"interval={self.slot_interval_minutes}, "
            f"exceptions={len(self.exceptions or {})})>"
        )
