from datetime import timedelta
from decimal import Decimal

import pytest

from database import utcnow
from errors import BelowMinimum, InvalidState, NotApplicable, NotFound, QuotaExceeded
from packages.models import Package
from promo.models import PromoCode, DISCOUNT_FIXED, DISCOUNT_PERCENT
from promo.services import PromoService


def test_percent_discount_is_capped(db, package, promo):
    quote = PromoService.validate_and_compute("hemat", package, db)
    assert quote.base_price == Decimal("300000.00")
    assert quote.discount == Decimal("100000.00")
    assert quote.final_amount == Decimal("200000.00")


def test_fixed_discount_never_goes_negative(db, package):
    db.add(PromoCode(code="BIG", discount_type=DISCOUNT_FIXED, value=Decimal("500000"), is_active=True))
    db.commit()
    quote = PromoService.validate_and_compute(" big ", package, db)
    assert quote.final_amount == Decimal("0")


def test_promo_price_used_until_it_expires(db):
    now = utcnow()
    package = Package(
        name="Promo Month",
        price=Decimal("300000"),
        promo_price=Decimal("250000"),
        promo_expires_at=now + timedelta(days=1),
        duration_days=30,
    )
    assert PromoService.base_price(package, now) == Decimal("250000")
    assert PromoService.base_price(package, now + timedelta(days=2)) == Decimal("300000")
    package.promo_price = Decimal("0")
    assert PromoService.base_price(package, now) == Decimal("300000")


def test_unknown_or_inactive_code(db, package, promo):
    with pytest.raises(NotFound):
        PromoService.validate_and_compute("NOPE", package, db)
    promo.is_active = False
    db.commit()
    with pytest.raises(NotFound):
        PromoService.validate_and_compute("HEMAT", package, db)


def test_validity_window(db, package, promo):
    now = utcnow()
    promo.starts_at = now + timedelta(days=1)
    db.commit()
    with pytest.raises(InvalidState):
        PromoService.validate_and_compute("HEMAT", package, db, now=now)
    promo.starts_at = None
    promo.ends_at = now - timedelta(days=1)
    db.commit()
    with pytest.raises(InvalidState):
        PromoService.validate_and_compute("HEMAT", package, db, now=now)


def test_usage_limit(db, package, promo):
    promo.usage_limit = 1
    promo.used_count = 1
    db.commit()
    with pytest.raises(QuotaExceeded):
        PromoService.validate_and_compute("HEMAT", package, db)


def test_package_restriction(db, package, promo):
    other = Package(name="Yearly", price=Decimal("3000000"), duration_days=365)
    db.add(other)
    db.commit()
    promo.package_id = other.id
    db.commit()
    with pytest.raises(NotApplicable):
        PromoService.validate_and_compute("HEMAT", package, db)


def test_minimum_amount(db, package, promo):
    promo.min_amount = Decimal("500000")
    db.commit()
    with pytest.raises(BelowMinimum):
        PromoService.validate_and_compute("HEMAT", package, db)


def test_increment_usage_in_place(db, promo):
    PromoService.increment_usage(promo.id, db)
    PromoService.increment_usage(promo.id, db)
    db.commit()
    db.refresh(promo)
    assert promo.used_count == 2


def test_validate_route(client, member, package, promo):
    from conftest import auth_headers

    response = client.post(
        "/promos/validate",
        json={"code": "hemat", "package_id": package.id},
        headers=auth_headers(member),
    )
    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["final_amount"]) == Decimal("200000")
    assert body["promo"]["code"] == "HEMAT"

    response = client.post(
        "/promos/validate",
        json={"code": "missing", "package_id": package.id},
        headers=auth_headers(member),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"
