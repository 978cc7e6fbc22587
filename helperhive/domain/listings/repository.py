"""Listing repository - Database operations for service listings"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service, ServiceStatus


class ListingRepository:
    """Repository for service listing database operations"""

    @staticmethod
    def get_service(db: Session, service_id: str) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def add_service(db: Session, owner_id: str, **service_data) -> Service:
        service = Service(owner_id=owner_id, status=ServiceStatus.PENDING.value, **service_data)
        db.add(service)
        db.flush()
        return service

    @staticmethod
    def list_services(
        db: Session,
        status: Optional[str] = None,
        category: Optional[str] = None,
        city: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> list[Service]:
        query = db.query(Service)

        if status:
            query = query.filter(Service.status == status)
        if category:
            query = query.filter(Service.category == category)
        if city:
            query = query.filter(Service.city.ilike(city))
        if owner_id:
            query = query.filter(Service.owner_id == owner_id)

        return query.order_by(Service.created_at.desc()).all()

    @staticmethod
    def delete_service(db: Session, service: Service) -> None:
        db.delete(service)
