from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.database import get_db
from app.schemas.service import ServiceCreate, ServiceRead, ServiceUpdate
from app.services.catalog import ServiceCatalogService

router = APIRouter()


@router.get("", response_model=list[ServiceRead])
async def get_services(
    is_active: Optional[bool] = None, db: AsyncSession = Depends(get_db)
):
    """List the service catalog."""
    return await ServiceCatalogService.get_services(db, is_active)


@router.post("", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(service_data: ServiceCreate, db: AsyncSession = Depends(get_db)):
    """Add a service to the catalog."""
    return await ServiceCatalogService.create_service(db, service_data)


@router.get("/{service_id}", response_model=ServiceRead)
async def get_service(service_id: str, db: AsyncSession = Depends(get_db)):
    service = await ServiceCatalogService.get_service(db, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


@router.put("/{service_id}", response_model=ServiceRead)
async def update_service(
    service_id: str, service_data: ServiceUpdate, db: AsyncSession = Depends(get_db)
):
    service = await ServiceCatalogService.update_service(db, service_id, service_data)
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service
