from decimal import Decimal

from app.models.package import LocationPackagePrice, MemberPackagePrice, SessionPackage
from app.services.pricing import compute_vat, resolve_price, to_money


def _package(include_vat=False):
    return SessionPackage(name="8 Sessions", session_count=8, price=Decimal("800"), expiry_days=30, include_vat=include_vat)


def test_to_money_rounds_half_up():
    assert to_money("10.005") == Decimal("10.01")
    assert to_money(3) == Decimal("3.00")


def test_compute_vat_included():
    vat, total = compute_vat(Decimal("1000"), True, rate=0.14)
    assert vat == Decimal("140.00")
    assert total == Decimal("1140.00")


def test_compute_vat_not_included():
    vat, total = compute_vat(Decimal("999.99"), False, rate=0.14)
    assert vat == Decimal("0.00")
    assert total == Decimal("999.99")


def test_default_price_when_nothing_else_applies():
    price, price_type, include_vat = resolve_price(_package(include_vat=True), is_renewal=False)
    assert (price, price_type, include_vat) == (Decimal("800.00"), "default", True)


def test_member_price_only_for_renewals():
    member_price = MemberPackagePrice(price=Decimal("600"), is_active=True)

    price, price_type, _ = resolve_price(_package(), is_renewal=False, member_price=member_price)
    assert price_type == "default"

    price, price_type, _ = resolve_price(_package(), is_renewal=True, member_price=member_price)
    assert (price, price_type) == (Decimal("600.00"), "member")


def test_inactive_member_price_is_ignored():
    member_price = MemberPackagePrice(price=Decimal("600"), is_active=False)
    _, price_type, _ = resolve_price(_package(), is_renewal=True, member_price=member_price)
    assert price_type == "default"


def test_location_price_sets_vat_flag():
    location_price = LocationPackagePrice(price=Decimal("900"), is_active=True, include_vat=True)
    price, price_type, include_vat = resolve_price(_package(include_vat=False), is_renewal=False, location_price=location_price)
    assert (price, price_type, include_vat) == (Decimal("900.00"), "location", True)


def test_member_price_beats_location_price_but_keeps_location_vat():
    member_price = MemberPackagePrice(price=Decimal("500"), is_active=True)
    location_price = LocationPackagePrice(price=Decimal("900"), is_active=True, include_vat=True)
    price, price_type, include_vat = resolve_price(
        _package(include_vat=False), is_renewal=True, member_price=member_price, location_price=location_price
    )
    assert (price, price_type, include_vat) == (Decimal("500.00"), "member", True)


def test_inactive_location_price_falls_back_to_package():
    location_price = LocationPackagePrice(price=Decimal("900"), is_active=False, include_vat=True)
    price, price_type, include_vat = resolve_price(_package(include_vat=False), is_renewal=False, location_price=location_price)
    assert (price, price_type, include_vat) == (Decimal("800.00"), "default", False)
