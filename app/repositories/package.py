from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.models.package import SessionPackage, MemberPackage, LocationPackagePrice, MemberPackagePrice
from app.repositories.base import BaseRepository
from app.schemas.package import PackageCreate, PackageUpdate, LocationPriceSet, MemberPriceSet


class PackageRepository(BaseRepository[SessionPackage, PackageCreate, PackageUpdate]):
    def get_active(self, db: Session) -> List[SessionPackage]:
        return (
            db.query(SessionPackage)
            .filter(SessionPackage.is_active.is_(True))
            .order_by(SessionPackage.session_count, SessionPackage.id)
            .all()
        )

    def get_all(self, db: Session, *, include_inactive: bool = True) -> List[SessionPackage]:
        query = db.query(SessionPackage)
        if not include_inactive:
            query = query.filter(SessionPackage.is_active.is_(True))
        return query.order_by(SessionPackage.session_count, SessionPackage.id).all()

    def get_active_by_id(self, db: Session, id: int) -> Optional[SessionPackage]:
        return db.query(SessionPackage).filter(SessionPackage.id == id, SessionPackage.is_active.is_(True)).first()


class LocationPriceRepository(BaseRepository[LocationPackagePrice, LocationPriceSet, LocationPriceSet]):
    def get_by_pair(self, db: Session, *, location_id: int, package_id: int) -> Optional[LocationPackagePrice]:
        return (
            db.query(LocationPackagePrice)
            .filter(LocationPackagePrice.location_id == location_id, LocationPackagePrice.package_id == package_id)
            .first()
        )

    def get_for_package(self, db: Session, *, package_id: int, only_active: bool = False) -> List[LocationPackagePrice]:
        query = (
            db.query(LocationPackagePrice)
            .options(joinedload(LocationPackagePrice.location))
            .filter(LocationPackagePrice.package_id == package_id)
        )
        if only_active:
            query = query.filter(LocationPackagePrice.is_active.is_(True))
        return query.order_by(LocationPackagePrice.location_id).all()


class MemberPriceRepository(BaseRepository[MemberPackagePrice, MemberPriceSet, MemberPriceSet]):
    def get_by_pair(self, db: Session, *, user_id: int, package_id: int) -> Optional[MemberPackagePrice]:
        return (
            db.query(MemberPackagePrice)
            .filter(MemberPackagePrice.user_id == user_id, MemberPackagePrice.package_id == package_id)
            .first()
        )

    def get_for_user(self, db: Session, *, user_id: int, only_active: bool = False) -> List[MemberPackagePrice]:
        query = (
            db.query(MemberPackagePrice)
            .options(joinedload(MemberPackagePrice.package))
            .filter(MemberPackagePrice.user_id == user_id)
        )
        if only_active:
            query = query.filter(MemberPackagePrice.is_active.is_(True))
        return query.order_by(MemberPackagePrice.package_id).all()


class MemberPackageRepository(BaseRepository[MemberPackage, PackageCreate, PackageUpdate]):
    def _active_query(self, db: Session, user_id: int, now: datetime):
        return db.query(MemberPackage).filter(
            MemberPackage.user_id == user_id,
            MemberPackage.is_expired.is_(False),
            MemberPackage.expiry_date > now,
        )

    def get_booking_source(self, db: Session, *, user_id: int, now: datetime) -> Optional[MemberPackage]:
        """
        Paquete del que se descuenta una reserva: activo, con créditos y el que antes caduca.
        """
        return (
            self._active_query(db, user_id, now)
            .filter(MemberPackage.sessions_remaining > 0)
            .order_by(MemberPackage.expiry_date.asc(), MemberPackage.id.asc())
            .with_for_update()
            .first()
        )

    def get_active_for_user(self, db: Session, *, user_id: int, now: datetime) -> List[MemberPackage]:
        return (
            self._active_query(db, user_id, now)
            .options(joinedload(MemberPackage.package))
            .order_by(MemberPackage.expiry_date.asc())
            .all()
        )

    def get_latest_active(self, db: Session, *, user_id: int, now: datetime) -> Optional[MemberPackage]:
        return self._active_query(db, user_id, now).order_by(MemberPackage.expiry_date.desc()).first()

    def get_latest_purchased(self, db: Session, *, user_id: int) -> Optional[MemberPackage]:
        return (
            db.query(MemberPackage)
            .filter(MemberPackage.user_id == user_id)
            .order_by(MemberPackage.purchase_date.desc(), MemberPackage.id.desc())
            .first()
        )

    def get_expired_for_user(self, db: Session, *, user_id: int, now: datetime, limit: int = 5) -> List[MemberPackage]:
        """Paquetes caducados (marcados o con fecha pasada), los más recientes primero"""
        return (
            db.query(MemberPackage)
            .options(joinedload(MemberPackage.package))
            .filter(
                MemberPackage.user_id == user_id,
                (MemberPackage.is_expired.is_(True)) | (MemberPackage.expiry_date <= now),
            )
            .order_by(MemberPackage.expiry_date.desc())
            .limit(limit)
            .all()
        )

    def has_expired_credits(self, db: Session, *, user_id: int, now: datetime) -> bool:
        query = db.query(MemberPackage.id).filter(
            MemberPackage.user_id == user_id,
            MemberPackage.sessions_remaining > 0,
            (MemberPackage.is_expired.is_(True)) | (MemberPackage.expiry_date <= now),
        )
        return db.query(query.exists()).scalar()

    def user_has_any(self, db: Session, *, user_id: int) -> bool:
        query = db.query(MemberPackage.id).filter(MemberPackage.user_id == user_id)
        return db.query(query.exists()).scalar()

    def get_all_for_user(self, db: Session, *, user_id: int) -> List[MemberPackage]:
        return (
            db.query(MemberPackage)
            .options(joinedload(MemberPackage.package))
            .filter(MemberPackage.user_id == user_id)
            .order_by(MemberPackage.purchase_date.desc(), MemberPackage.id.desc())
            .all()
        )

    def active_credits_by_user(self, db: Session, *, user_ids: List[int], now: datetime) -> Dict[int, int]:
        """Suma de créditos disponibles en paquetes activos por usuario"""
        if not user_ids:
            return {}
        rows = (
            db.query(MemberPackage.user_id, func.coalesce(func.sum(MemberPackage.sessions_remaining), 0))
            .filter(
                MemberPackage.user_id.in_(user_ids),
                MemberPackage.is_expired.is_(False),
                MemberPackage.expiry_date > now,
            )
            .group_by(MemberPackage.user_id)
            .all()
        )
        return {user_id: int(total) for user_id, total in rows}

    def get_due_for_expiry(self, db: Session, *, now: datetime) -> List[MemberPackage]:
        return (
            db.query(MemberPackage)
            .filter(MemberPackage.is_expired.is_(False), MemberPackage.expiry_date <= now)
            .all()
        )

    def get_expiring_between(
        self, db: Session, *, start: datetime, end: datetime, with_credits: bool = False
    ) -> List[MemberPackage]:
        query = (
            db.query(MemberPackage)
            .options(joinedload(MemberPackage.user), joinedload(MemberPackage.package))
            .filter(
                MemberPackage.is_expired.is_(False),
                MemberPackage.expiry_date > start,
                MemberPackage.expiry_date <= end,
            )
        )
        if with_credits:
            query = query.filter(MemberPackage.sessions_remaining > 0)
        return query.order_by(MemberPackage.expiry_date).all()


package_repository = PackageRepository(SessionPackage)
location_price_repository = LocationPriceRepository(LocationPackagePrice)
member_price_repository = MemberPriceRepository(MemberPackagePrice)
member_package_repository = MemberPackageRepository(MemberPackage)
