from typing import Optional, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.location import Location
from app.repositories.base import BaseRepository
from app.schemas.location import LocationCreate, LocationUpdate


class LocationRepository(BaseRepository[Location, LocationCreate, LocationUpdate]):
    def get_by_name(self, db: Session, *, name: str) -> Optional[Location]:
        return db.query(Location).filter(func.lower(Location.name) == name.strip().lower()).first()

    def get_active(self, db: Session) -> List[Location]:
        """Sedes activas ordenadas por nombre"""
        return db.query(Location).filter(Location.is_active.is_(True)).order_by(Location.name).all()

    def get_all(self, db: Session, *, include_inactive: bool = True) -> List[Location]:
        query = db.query(Location)
        if not include_inactive:
            query = query.filter(Location.is_active.is_(True))
        return query.order_by(Location.name).all()

    def get_active_by_id(self, db: Session, id: int) -> Optional[Location]:
        return db.query(Location).filter(Location.id == id, Location.is_active.is_(True)).first()


location_repository = LocationRepository(Location)
