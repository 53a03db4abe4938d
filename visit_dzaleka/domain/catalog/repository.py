"""Catalog repository - Database operations for reference data"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, Guide, PointOfInterest, PricingConfig


class CatalogRepository:
    """Repository for zones, points of interest, meeting points and pricing"""

    @staticmethod
    def list_rows(db: Session, model, include_inactive: bool = False) -> list:
        query = db.query(model)
        if not include_inactive:
            query = query.filter(model.is_active.is_(True))
        return query.order_by(model.name).all()

    @staticmethod
    def get_row(db: Session, model, row_id: int):
        return db.query(model).filter(model.id == row_id).first()

    @staticmethod
    def create_row(db: Session, model, **data):
        row = model(**data)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def update_row(db: Session, row, **updates):
        for key, value in updates.items():
            if value is not None and hasattr(row, key):
                setattr(row, key, value)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def list_points_of_interest(
        db: Session, zone_id: Optional[int] = None, include_inactive: bool = False
    ) -> list[PointOfInterest]:
        query = db.query(PointOfInterest)
        if zone_id is not None:
            query = query.filter(PointOfInterest.zone_id == zone_id)
        if not include_inactive:
            query = query.filter(PointOfInterest.is_active.is_(True))
        return query.order_by(PointOfInterest.name).all()

    @staticmethod
    def get_pricing_configs(db: Session) -> list[PricingConfig]:
        return db.query(PricingConfig).order_by(PricingConfig.id).all()

    @staticmethod
    def get_pricing_config(db: Session, group_size: str) -> Optional[PricingConfig]:
        return db.query(PricingConfig).filter(PricingConfig.group_size == group_size).first()

    @staticmethod
    def zone_usage(db: Session) -> tuple[list[list], list[list]]:
        """Selected zones of non-cancelled bookings, assigned zones of live guides"""
        booking_zones = [
            row[0] or []
            for row in db.query(Booking.selected_zones).filter(Booking.status != "cancelled").all()
        ]
        guide_zones = [
            row[0] or []
            for row in db.query(Guide.assigned_zones).filter(Guide.deleted_at.is_(None)).all()
        ]
        return booking_zones, guide_zones
