from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ServiceBase(BaseModel):
    name: str = Field(..., max_length=255)
    duration_minutes: int = Field(..., gt=0, le=600)
    price: Decimal = Field(..., ge=0)
    is_active: bool = True


class ServiceCreate(ServiceBase):
    id: Optional[str] = Field(
        None, max_length=36, description="Optional stable id; generated when omitted"
    )


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    duration_minutes: Optional[int] = Field(None, gt=0, le=600)
    price: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None


class ServiceRead(ServiceBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
