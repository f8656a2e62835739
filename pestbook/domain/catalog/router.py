"""Service catalog router - public listing and owner management"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...auth import require_capability
from ...database import get_db
from ..access import Action, Actor
from .schemas import ServiceCreate, ServiceResponse, ServiceUpdate
from .service import CatalogService

router = APIRouter(tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


@router.get("/services")
async def list_services(service: CatalogService = Depends(get_catalog_service)):
    """Active services for the booking form"""
    services = service.list_active()
    return {
        "ok": True,
        "services": [ServiceResponse.model_validate(s) for s in services],
    }


@router.get("/admin/services")
async def admin_list_services(
    _: Actor = Depends(require_capability(Action.MANAGE_SERVICES)),
    service: CatalogService = Depends(get_catalog_service),
):
    services = service.list_active()
    return {
        "ok": True,
        "services": [ServiceResponse.model_validate(s) for s in services],
    }


@router.post("/admin/services", status_code=status.HTTP_201_CREATED)
async def create_service(
    data: ServiceCreate,
    _: Actor = Depends(require_capability(Action.MANAGE_SERVICES)),
    service: CatalogService = Depends(get_catalog_service),
):
    created = service.create_service(data)
    return {"ok": True, "service": ServiceResponse.model_validate(created)}


@router.patch("/admin/services/{public_id}")
async def update_service(
    public_id: str,
    data: ServiceUpdate,
    _: Actor = Depends(require_capability(Action.MANAGE_SERVICES)),
    service: CatalogService = Depends(get_catalog_service),
):
    updated = service.update_service(public_id, data)
    return {"ok": True, "service": ServiceResponse.model_validate(updated)}


@router.delete("/admin/services/{public_id}")
async def deactivate_service(
    public_id: str,
    _: Actor = Depends(require_capability(Action.MANAGE_SERVICES)),
    service: CatalogService = Depends(get_catalog_service),
):
    """Soft-deactivate; bookings keep referencing the row"""
    service.deactivate_service(public_id)
    return {"ok": True}
