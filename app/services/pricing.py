import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models.location import Location
from app.models.package import SessionPackage, LocationPackagePrice, MemberPackagePrice
from app.models.user import User
from app.repositories.package import (
    package_repository,
    location_price_repository,
    member_price_repository,
    member_package_repository,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_vat(amount: Any, include_vat: bool, rate: Optional[float] = None) -> Tuple[Decimal, Decimal]:
    """
    Calcula el IVA de un importe.

    Returns:
        (vat_amount, total_amount); vat_amount = round(amount * rate, 2) cuando
        include_vat es True, 0 en caso contrario
    """
    amount = to_money(amount)
    if not include_vat:
        return Decimal("0.00"), amount
    vat_rate = Decimal(str(get_settings().VAT_RATE if rate is None else rate))
    vat_amount = (amount * vat_rate).quantize(CENT, rounding=ROUND_HALF_UP)
    return vat_amount, amount + vat_amount


def resolve_price(
    package: SessionPackage,
    *,
    is_renewal: bool,
    member_price: Optional[MemberPackagePrice] = None,
    location_price: Optional[LocationPackagePrice] = None
) -> Tuple[Decimal, str, bool]:
    """
    Orden de resolución: precio especial del miembro (solo en renovación), precio de
    la sede, precio por defecto del paquete.

    El flag de IVA es el del precio de sede cuando existe uno activo para la sede
    elegida; si no, el del paquete.

    Returns:
        (price, price_type, include_vat)
    """
    include_vat = bool(package.include_vat)
    if location_price is not None and location_price.is_active:
        include_vat = bool(location_price.include_vat)

    if is_renewal and member_price is not None and member_price.is_active:
        return to_money(member_price.price), "member", include_vat
    if location_price is not None and location_price.is_active:
        return to_money(location_price.price), "location", include_vat
    return to_money(package.price), "default", include_vat


class PricingService:
    def quote(
        self, db: Session, *, user: User, package: SessionPackage, location: Optional[Location] = None
    ) -> Dict[str, Any]:
        """Precio final de un paquete para un miembro y una sede opcional"""
        is_renewal = member_package_repository.user_has_any(db, user_id=user.id)
        member_price = member_price_repository.get_by_pair(db, user_id=user.id, package_id=package.id)
        location_price = None
        if location is not None:
            location_price = location_price_repository.get_by_pair(
                db, location_id=location.id, package_id=package.id
            )

        price, price_type, include_vat = resolve_price(
            package, is_renewal=is_renewal, member_price=member_price, location_price=location_price
        )
        vat_amount, total = compute_vat(price, include_vat)
        return {
            "price": price,
            "price_type": price_type,
            "include_vat": include_vat,
            "vat_amount": vat_amount,
            "total_price": total,
            "is_renewal": is_renewal,
            "member_price": to_money(member_price.price) if member_price and member_price.is_active else None,
        }

    def get_offers(self, db: Session, *, user: User, location_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Catálogo de paquetes activos con el precio resuelto para el miembro.
        """
        is_renewal = member_package_repository.user_has_any(db, user_id=user.id)
        member_prices = {
            mp.package_id: mp for mp in member_price_repository.get_for_user(db, user_id=user.id, only_active=True)
        }

        offers: List[Dict[str, Any]] = []
        for package in package_repository.get_active(db):
            location_prices = location_price_repository.get_for_package(db, package_id=package.id, only_active=True)
            location_price = None
            if location_id is not None:
                location_price = next((lp for lp in location_prices if lp.location_id == location_id), None)

            member_price = member_prices.get(package.id)
            price, price_type, include_vat = resolve_price(
                package, is_renewal=is_renewal, member_price=member_price, location_price=location_price
            )
            vat_amount, total = compute_vat(price, include_vat)
            offers.append({
                "id": package.id,
                "name": package.name,
                "session_count": package.session_count,
                "expiry_days": package.expiry_days,
                "price": price,
                "price_type": price_type,
                "default_price": to_money(package.price),
                "member_price": to_money(member_price.price) if is_renewal and member_price else None,
                "location_prices": location_prices,
                "include_vat": include_vat,
                "vat_amount": vat_amount,
                "total_price": total,
            })

        return {
            "packages": offers,
            "is_renewal": is_renewal,
            "has_special_renewal_prices": any(offer["member_price"] is not None for offer in offers),
        }


pricing_service = PricingService()
