"""Service catalog business logic"""

import logging

from sqlalchemy.orm import Session

from ...errors import NotFoundError
from ...models import Service
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    """Owner-managed service catalog. Services are deactivated, never deleted."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def list_active(self) -> list[Service]:
        return self.repo.list_active(self.db)

    def get_service(self, public_id: str) -> Service:
        service = self.repo.get_by_public_id(self.db, public_id)
        if not service:
            raise NotFoundError("Service not found")
        return service

    def create_service(self, data: ServiceCreate) -> Service:
        service_data = {
            "title": data.title.strip(),
            "description": data.description.strip(),
            "duration_minutes": data.duration_minutes,
            "base_price_cents": data.base_price_cents,
            "is_active": True,
        }
        if data.sort_order is not None:
            service_data["sort_order"] = data.sort_order

        service = self.repo.create(self.db, **service_data)
        logger.info(f"✅ Service created: {service.public_id} ({service.title})")
        return service

    def update_service(self, public_id: str, data: ServiceUpdate) -> Service:
        service = self.get_service(public_id)
        updates = data.model_dump(exclude_unset=True)
        # duration and price may be cleared; the rest are NOT NULL
        updates = {
            k: v
            for k, v in updates.items()
            if v is not None or k in ("duration_minutes", "base_price_cents")
        }
        for key in ("title", "description"):
            if key in updates:
                updates[key] = updates[key].strip()
        return self.repo.update(self.db, service, **updates)

    def deactivate_service(self, public_id: str) -> Service:
        service = self.get_service(public_id)
        logger.info(f"Deactivating service {public_id}")
        return self.repo.update(self.db, service, is_active=False)
