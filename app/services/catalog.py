from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceNotFoundError
from app.models.service import Service
from app.schemas.service import ServiceCreate, ServiceUpdate

logger = structlog.get_logger(__name__)


class ServiceCatalogService:
    """Business logic for the service catalog (reference data for durations and prices)."""

    @staticmethod
    async def get_services(
        db: AsyncSession, is_active: Optional[bool] = None
    ) -> list[Service]:
        stmt = select(Service)
        if is_active is not None:
            stmt = stmt.filter(Service.is_active == is_active)
        stmt = stmt.order_by(Service.name)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_service(db: AsyncSession, service_id: str) -> Optional[Service]:
        result = await db.execute(select(Service).filter(Service.id == service_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def require_active_service(db: AsyncSession, service_id: str) -> Service:
        service = await ServiceCatalogService.get_service(db, service_id)
        if not service or not service.is_active:
            raise ServiceNotFoundError(service_id)
        return service

    @staticmethod
    async def get_duration_map(db: AsyncSession) -> dict[str, int]:
        """``service_id -> duration_minutes`` for every service, active or not.

        Inactive services still matter: existing bookings keep blocking time.
        """
        result = await db.execute(select(Service.id, Service.duration_minutes))
        return {str(service_id): duration for service_id, duration in result.all()}

    @staticmethod
    async def create_service(db: AsyncSession, service_data: ServiceCreate) -> Service:
        data = service_data.model_dump(exclude_none=True)
        db_service = Service(**data)
        db.add(db_service)
        await db.commit()
        await db.refresh(db_service)

        logger.info(
            "Service created",
            service_id=db_service.id,
            name=db_service.name,
            duration_minutes=db_service.duration_minutes,
        )
        return db_service

    @staticmethod
    async def update_service(
        db: AsyncSession, service_id: str, service_data: ServiceUpdate
    ) -> Optional[Service]:
        db_service = await ServiceCatalogService.get_service(db, service_id)
        if not db_service:
            return None

        update_data = service_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(db_service, field, value)

        await db.commit()
        await db.refresh(db_service)
        logger.info("Service updated", service_id=service_id, fields=list(update_data))
        return db_service
