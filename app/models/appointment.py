from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Text,
    ForeignKey,
    Numeric,
    Index,
    CheckConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional


class AppointmentStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingSource(enum.Enum):
    ONLINE = "online"  # self-service, starts pending
    STAFF = "staff"  # entered by staff, starts confirmed


INITIAL_STATUS = {
    BookingSource.ONLINE: AppointmentStatus.PENDING,
    BookingSource.STAFF: AppointmentStatus.CONFIRMED,
}

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.CONFIRMED: [
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.IN_PROGRESS: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.COMPLETED: [],  # Final state
    AppointmentStatus.CANCELLED: [],  # Final state
}

QUEUED_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


def can_transition(current: AppointmentStatus, new_status: AppointmentStatus) -> bool:
    return new_status in ALLOWED_TRANSITIONS.get(current, [])


def _new_id() -> str:
    return str(uuid.uuid4())


class Appointment(Base):
    """One booking for the chair, with its lifecycle state machine."""

    __tablename__ = "appointments"

    # Core identity
    id = Column(String(36), primary_key=True, default=_new_id)

    # Client (free-form: guests have a name and phone only)
    client_id = Column(String(64), nullable=True, index=True)
    client_name = Column(String(255), nullable=False)
    client_phone = Column(String(32), nullable=True, index=True)

    # Scheduling details; `time` is the wall-clock start and never changes on skip
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=False)
    queue_sequence = Column(Integer, nullable=False, default=0)

    # Status management
    status = Column(
        String(20), nullable=False, default=AppointmentStatus.PENDING.value, index=True
    )
    previous_status = Column(String(20), nullable=True)
    status_changed_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)
    booking_source = Column(String(20), default=BookingSource.ONLINE.value)

    # Pricing and notes
    price = Column(Numeric(10, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # Optimistic concurrency counter
    version = Column(Integer, nullable=False, default=1)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_appointments_date_time", "date", "time"),
        CheckConstraint("price >= 0", name="check_non_negative_price"),
    )
    __mapper_args__ = {"version_id_col": version}

    service = relationship("Service")

    # Status transition methods
    @property
    def status_enum(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)

    def can_transition_to(self, new_status: AppointmentStatus) -> bool:
        """Check if appointment can transition to the new status."""
        return can_transition(AppointmentStatus(self.status), new_status)

    def transition_to(
        self,
        new_status: AppointmentStatus,
        now: datetime,
        price: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> bool:
        """Transition to ``new_status``; returns False and changes nothing on an illegal edge."""
        if not self.can_transition_to(new_status):
            return False

        self.previous_status = self.status
        self.status = new_status.value
        self.status_changed_at = now

        if new_status == AppointmentStatus.IN_PROGRESS:
            self.started_at = now

        elif new_status == AppointmentStatus.COMPLETED:
            self.finished_at = now
            if price is not None:
                self.price = price

        if notes:
            self.notes = f"{self.notes}\n{notes}" if self.notes else notes

        return True

    @property
    def is_queued(self) -> bool:
        return self.status in [s.value for s in QUEUED_STATUSES]

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[AppointmentStatus(self.status)]

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, status='{self.status}', "
            f"date='{self.date}', time='{self.time}', client='{self.client_name}')>"
        )
