import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundException
from app.models.package import LocationPackagePrice, MemberPackagePrice, SessionPackage
from app.models.user import UserRole
from app.repositories.location import location_repository
from app.repositories.package import location_price_repository, member_price_repository, package_repository
from app.repositories.user import user_repository
from app.schemas.package import LocationPriceSet, MemberPriceSet, PackageCreate, PackageUpdate

logger = logging.getLogger(__name__)


class PackageService:
    """Catálogo de paquetes y sus precios por sede y por miembro (administración)."""

    def list_packages(self, db: Session, *, include_inactive: bool = True) -> List[SessionPackage]:
        return package_repository.get_all(db, include_inactive=include_inactive)

    def _get_package(self, db: Session, package_id: int) -> SessionPackage:
        package = package_repository.get(db, package_id)
        if not package:
            raise NotFoundException("Package not found", code="PACKAGE_NOT_FOUND")
        return package

    def create_package(self, db: Session, *, package_in: PackageCreate) -> SessionPackage:
        package = package_repository.create(db, obj_in=package_in)
        logger.info(f"Paquete {package.id} creado: {package.name} ({package.session_count} créditos)")
        return package

    def update_package(self, db: Session, *, package_id: int, package_in: PackageUpdate) -> SessionPackage:
        # Los paquetes ya comprados conservan sus créditos y caducidad
        package = self._get_package(db, package_id)
        return package_repository.update(db, db_obj=package, obj_in=package_in)

    def deactivate_package(self, db: Session, *, package_id: int) -> SessionPackage:
        package = self._get_package(db, package_id)
        package = package_repository.update(db, db_obj=package, obj_in={"is_active": False})
        logger.info(f"Paquete {package.id} desactivado")
        return package

    # Precios por sede

    def get_location_prices(self, db: Session, *, package_id: int) -> List[LocationPackagePrice]:
        self._get_package(db, package_id)
        return location_price_repository.get_for_package(db, package_id=package_id)

    def set_location_price(
        self, db: Session, *, package_id: int, location_id: int, price_in: LocationPriceSet
    ) -> LocationPackagePrice:
        """Crea o actualiza el precio del paquete en una sede"""
        self._get_package(db, package_id)
        if not location_repository.get(db, location_id):
            raise NotFoundException("Location not found", code="LOCATION_NOT_FOUND")

        existing = location_price_repository.get_by_pair(db, location_id=location_id, package_id=package_id)
        if existing:
            return location_price_repository.update(db, db_obj=existing, obj_in=price_in)
        return location_price_repository.create(
            db, obj_in={**price_in.model_dump(), "location_id": location_id, "package_id": package_id}
        )

    def delete_location_price(self, db: Session, *, package_id: int, location_id: int) -> None:
        existing = location_price_repository.get_by_pair(db, location_id=location_id, package_id=package_id)
        if not existing:
            raise NotFoundException("Location price not found", code="PRICE_NOT_FOUND")
        location_price_repository.remove(db, id=existing.id)

    # Precios especiales por miembro

    def _get_member(self, db: Session, user_id: int):
        member = user_repository.get_active(db, user_id, role=UserRole.MEMBER)
        if not member:
            raise NotFoundException("Member not found", code="USER_NOT_FOUND")
        return member

    def get_member_prices(self, db: Session, *, user_id: int) -> List[MemberPackagePrice]:
        self._get_member(db, user_id)
        return member_price_repository.get_for_user(db, user_id=user_id)

    def set_member_price(
        self, db: Session, *, user_id: int, package_id: int, price_in: MemberPriceSet
    ) -> MemberPackagePrice:
        self._get_member(db, user_id)
        self._get_package(db, package_id)

        existing = member_price_repository.get_by_pair(db, user_id=user_id, package_id=package_id)
        if existing:
            price = member_price_repository.update(db, db_obj=existing, obj_in=price_in)
        else:
            price = member_price_repository.create(
                db, obj_in={**price_in.model_dump(), "user_id": user_id, "package_id": package_id}
            )
        logger.info(f"Precio especial {price.price} del paquete {package_id} para el miembro {user_id}")
        return price

    def delete_member_price(self, db: Session, *, user_id: int, package_id: int) -> None:
        existing = member_price_repository.get_by_pair(db, user_id=user_id, package_id=package_id)
        if not existing:
            raise NotFoundException("Member price not found", code="PRICE_NOT_FOUND")
        member_price_repository.remove(db, id=existing.id)


package_service = PackageService()
