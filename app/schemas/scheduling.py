from datetime import date as date_type
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.utils.validation import normalize_phone


class SlotStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    OWN = "own"
    PAST = "past"
    LUNCH = "lunch"


class CandidateSlot(BaseModel):
    label: str
    start_minutes: int


class SlotView(BaseModel):
    label: str
    start_minutes: int
    status: SlotStatus

    @property
    def selectable(self) -> bool:
        return self.status == SlotStatus.AVAILABLE


class ViewerIdentity(BaseModel):
    """Who is looking at the slots: a client id, or a phone for guests."""

    client_id: Optional[str] = None
    phone: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return not self.client_id and not normalize_phone(self.phone)

    def owns(self, appointment) -> bool:
        """Client ids decide when both sides have one; otherwise compare phones."""
        if self.is_anonymous:
            return False
        owner_id = getattr(appointment, "client_id", None)
        if owner_id and self.client_id:
            return str(owner_id) == str(self.client_id)
        viewer_phone = normalize_phone(self.phone)
        return viewer_phone is not None and viewer_phone == normalize_phone(
            getattr(appointment, "client_phone", None)
        )


class DaySlots(BaseModel):
    date: date_type
    service_id: str
    duration_minutes: int
    closed: bool = False
    slots: List[SlotView] = Field(default_factory=list)


class ShopStatus(BaseModel):
    is_open: bool
    reason: str
    opens_at_hour: Optional[int] = None
    closes_at_hour: Optional[int] = None


class AvailableDays(BaseModel):
    service_id: str
    start_date: date_type
    end_date: date_type
    days: List[date_type] = Field(default_factory=list)
