from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.database import get_db
from app.schemas.shop_calendar import (
    DateExceptionUpdate,
    ShopCalendarConfig,
    ShopSettingsUpdate,
)
from app.services.shop_settings import ShopSettingsService

router = APIRouter()


@router.get("", response_model=ShopCalendarConfig)
async def get_shop_settings(db: AsyncSession = Depends(get_db)):
    """Get the shop calendar configuration."""
    return await ShopSettingsService(db).get_calendar_config()


@router.put("", response_model=ShopCalendarConfig)
async def update_shop_settings(
    update: ShopSettingsUpdate, db: AsyncSession = Depends(get_db)
):
    """Partially update hours, interval, closed days, lunch or holiday rules."""
    try:
        return await ShopSettingsService(db).update_settings(update)
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/exceptions/{day}", response_model=ShopCalendarConfig)
async def set_date_exception(
    day: date, exception: DateExceptionUpdate, db: AsyncSession = Depends(get_db)
):
    """Override hours, lunch or closure for a single date."""
    return await ShopSettingsService(db).set_exception(day, exception)


@router.delete("/exceptions/{day}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_date_exception(day: date, db: AsyncSession = Depends(get_db)):
    """Revert a date to the default calendar."""
    removed = await ShopSettingsService(db).remove_exception(day)
    if not removed:
        raise HTTPException(status_code=404, detail="No exception for this date")
