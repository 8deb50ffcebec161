from sqlalchemy import (
    Column,
    String,
    DateTime,
    Integer,
    Boolean,
    Numeric,
    CheckConstraint,
)
from sqlalchemy.sql import func
from app.core.database import Base
import uuid


class Service(Base):
    """A bookable service; its duration is what an appointment blocks on the chair."""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_positive_duration"),
        CheckConstraint("price >= 0", name="check_non_negative_service_price"),
    )

    def __repr__(self):
        return (
            f"<Service(id={self.id}, name='{self.name}', "
            f"duration={self.duration_minutes}min, price=${self.price})>"
        )
