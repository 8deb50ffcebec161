from datetime import date as date_type, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# Import enums from the model to avoid duplication
from app.models.appointment import AppointmentStatus
from app.utils.validation import validate_phone_number, validate_time_label


class BookingSourceSchema(str, Enum):
    ONLINE = "online"
    STAFF = "staff"


class AppointmentCreate(BaseModel):
    client_id: Optional[str] = None
    client_name: str = Field(..., min_length=1, max_length=255)
    client_phone: Optional[str] = None
    service_id: str
    date: date_type
    time: str
    booking_source: BookingSourceSchema = BookingSourceSchema.ONLINE
    notes: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        if not validate_time_label(v):
            raise ValueError("time must be HH:MM (24h)")
        return v

    @field_validator("client_phone")
    @classmethod
    def validate_phone(cls, v):
        if v and not validate_phone_number(v):
            raise ValueError("client_phone is not a valid phone number")
        return v

    @model_validator(mode="after")
    def validate_identity(self):
        if self.booking_source == BookingSourceSchema.ONLINE and not (
            self.client_id or self.client_phone
        ):
            raise ValueError("Online bookings need a client_id or client_phone")
        return self


class AppointmentRead(BaseModel):
    id: str
    client_id: Optional[str] = None
    client_name: str
    client_phone: Optional[str] = None
    service_id: str
    date: date_type
    time: str
    queue_sequence: int = 0
    status: AppointmentStatus
    previous_status: Optional[AppointmentStatus] = None
    status_changed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    booking_source: Optional[BookingSourceSchema] = None
    price: Decimal
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class AppointmentComplete(BaseModel):
    price: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class AppointmentList(BaseModel):
    appointments: List[AppointmentRead]
    total_count: int


class QueueSnapshot(BaseModel):
    date: date_type
    queue: List[AppointmentRead] = Field(default_factory=list)
    currently_serving: Optional[AppointmentRead] = None

    @property
    def next_up(self) -> Optional[AppointmentRead]:
        return self.queue[0] if self.queue else None


class DaySchedule(BaseModel):
    date: date_type
    closed: bool
    closed_reason: Optional[str] = None
    start_hour: int
    end_hour: int
    lunch_start_hour: Optional[int] = None
    lunch_end_hour: Optional[int] = None
    appointments: List[AppointmentRead] = Field(default_factory=list)


class WeekSchedule(BaseModel):
    start_date: date_type
    days: List[DaySchedule] = Field(default_factory=list)
