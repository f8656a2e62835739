"""Service catalog repository - Database operations for services"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service


class ServiceRepository:
    """Repository for service catalog database operations"""

    @staticmethod
    def list_active(db: Session) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.is_active.is_(True))
            .order_by(Service.sort_order.asc(), Service.title.asc())
            .all()
        )

    @staticmethod
    def get_by_public_id(db: Session, public_id: str) -> Optional[Service]:
        return db.query(Service).filter(Service.public_id == public_id).first()

    @staticmethod
    def get_active_by_public_id(db: Session, public_id: str) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(Service.public_id == public_id, Service.is_active.is_(True))
            .first()
        )

    @staticmethod
    def create(db: Session, **service_data) -> Service:
        service = Service(**service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update(db: Session, service: Service, **updates) -> Service:
        for key, value in updates.items():
            if hasattr(service, key):
                setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service
