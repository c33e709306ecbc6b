# src/promo/services.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, NamedTuple, Optional

from fastapi import HTTPException
from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from auth.services import AuthService
from database import utcnow
from errors import BelowMinimum, InvalidState, NotApplicable, NotFound, QuotaExceeded
from packages.models import Package
from packages.services import PackageService
from promo.models import PromoCode, DISCOUNT_PERCENT
from promo.schemas import PromoCreate, PromoUpdate, PromoResponse, PromoQuoteResponse

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class PromoQuote(NamedTuple):
    promo: PromoCode
    base_price: Decimal
    discount: Decimal
    final_amount: Decimal


def normalize_code(code: str) -> str:
    return code.strip().upper()


class PromoService:
    @staticmethod
    def base_price(package: Package, now: Optional[datetime] = None) -> Decimal:
        """Promo price while it is set and unexpired, list price otherwise."""
        now = now or utcnow()
        promo_price = Decimal(package.promo_price) if package.promo_price else Decimal("0")
        if promo_price > 0 and (package.promo_expires_at is None or package.promo_expires_at > now):
            return promo_price
        return Decimal(package.price)

    @staticmethod
    def compute_discount(promo: PromoCode, base_price: Decimal) -> Decimal:
        if promo.discount_type == DISCOUNT_PERCENT:
            discount = base_price * Decimal(promo.value) / Decimal(100)
        else:
            discount = Decimal(promo.value)
        if promo.max_discount is not None and discount > Decimal(promo.max_discount):
            discount = Decimal(promo.max_discount)
        return discount.quantize(CENT)

    @staticmethod
    def validate_and_compute(code: str, package: Package, db: Session, now: Optional[datetime] = None) -> PromoQuote:
        """Check every promo rule against the package and price it.

        Raises NotFound, InvalidState (window), QuotaExceeded, NotApplicable or
        BelowMinimum. Nothing is written.
        """
        now = now or utcnow()
        promo = db.query(PromoCode).filter(PromoCode.code == normalize_code(code)).first()
        if not promo or not promo.is_active:
            raise NotFound("Promo code not found or inactive")

        if promo.starts_at and promo.starts_at > now:
            raise InvalidState("Promo code is not active yet")
        if promo.ends_at and promo.ends_at < now:
            raise InvalidState("Promo code has expired")
        if promo.usage_limit is not None and promo.used_count >= promo.usage_limit:
            raise QuotaExceeded("Promo code usage limit reached")
        if promo.package_id is not None and promo.package_id != package.id:
            raise NotApplicable("Promo code does not apply to this package")

        base_price = PromoService.base_price(package, now)
        if promo.min_amount is not None and base_price < Decimal(promo.min_amount):
            raise BelowMinimum("Purchase amount is below the promo minimum")

        discount = PromoService.compute_discount(promo, base_price)
        final_amount = max(Decimal("0"), base_price - discount)
        return PromoQuote(promo=promo, base_price=base_price, discount=discount, final_amount=final_amount)

    @staticmethod
    def validate_for_package(code: str, package_id: int, db: Session) -> PromoQuoteResponse:
        package = PackageService.find_by_id(package_id, db)
        if not package or not package.is_active:
            raise NotFound("Package not found or inactive")
        quote = PromoService.validate_and_compute(code, package, db)
        return PromoQuoteResponse(
            promo=PromoResponse.model_validate(quote.promo),
            base_price=quote.base_price,
            discount=quote.discount,
            final_amount=quote.final_amount,
        )

    @staticmethod
    def increment_usage(promo_id: int, db: Session) -> bool:
        """Count one redemption in SQL, never past usage_limit.

        Returns False when the limit was already reached; the caller decides
        what an uncounted redemption means.
        """
        result = db.execute(
            update(PromoCode)
            .where(
                PromoCode.id == promo_id,
                or_(PromoCode.usage_limit.is_(None), PromoCode.used_count < PromoCode.usage_limit),
            )
            .values(used_count=PromoCode.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(f"Promo {promo_id} usage not counted: limit already reached")
            return False
        return True

    @staticmethod
    def _check_code_free(code: str, db: Session, exclude_id: Optional[int] = None) -> None:
        query = db.query(PromoCode).filter(PromoCode.code == code)
        if exclude_id is not None:
            query = query.filter(PromoCode.id != exclude_id)
        if query.first():
            raise HTTPException(status_code=400, detail="Promo code already exists")

    @staticmethod
    def create_promo(promo_data: PromoCreate, admin_id: int, db: Session) -> PromoResponse:
        data = promo_data.model_dump()
        data["code"] = normalize_code(data["code"])
        data["discount_type"] = promo_data.discount_type.value
        PromoService._check_code_free(data["code"], db)
        db_promo = PromoCode(**data)
        db.add(db_promo)
        db.flush()
        AuthService.log_admin_action(admin_id, f"Created promo {db_promo.code}", db)
        db.commit()
        db.refresh(db_promo)
        return PromoResponse.model_validate(db_promo)

    @staticmethod
    def get_promos(db: Session) -> List[PromoResponse]:
        return [PromoResponse.model_validate(p) for p in db.query(PromoCode).order_by(PromoCode.id.desc()).all()]

    @staticmethod
    def update_promo(promo_id: int, promo_data: PromoUpdate, admin_id: int, db: Session) -> Optional[PromoResponse]:
        db_promo = db.query(PromoCode).filter(PromoCode.id == promo_id).first()
        if not db_promo:
            return None
        data = promo_data.model_dump(exclude_unset=True)
        if data.get("code"):
            data["code"] = normalize_code(data["code"])
            PromoService._check_code_free(data["code"], db, exclude_id=promo_id)
        if data.get("discount_type"):
            data["discount_type"] = promo_data.discount_type.value
        for key, value in data.items():
            setattr(db_promo, key, value)
        AuthService.log_admin_action(admin_id, f"Updated promo {db_promo.code}", db)
        db.commit()
        db.refresh(db_promo)
        return PromoResponse.model_validate(db_promo)

    @staticmethod
    def delete_promo(promo_id: int, admin_id: int, db: Session) -> bool:
        db_promo = db.query(PromoCode).filter(PromoCode.id == promo_id).first()
        if not db_promo:
            return False
        if db_promo.transactions:
            # Redeemed codes stay for the ledger; retire them instead.
            db_promo.is_active = False
        else:
            db.delete(db_promo)
        AuthService.log_admin_action(admin_id, f"Deleted promo {db_promo.code}", db)
        db.commit()
        return True
