# src/promo/routes.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from promo.services import PromoService
from promo.schemas import PromoCreate, PromoUpdate, PromoResponse, PromoValidateRequest, PromoQuoteResponse
from auth.routes import get_current_user, check_admin_role
from auth.models import User
from database import get_db

router = APIRouter(tags=["promos"])

@router.post("/promos/validate", response_model=PromoQuoteResponse)
def validate_promo(
    request: PromoValidateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Preview the price of a package with a promo code applied."""
    return PromoService.validate_for_package(request.code, request.package_id, db)

@router.post("/admin/promos", response_model=PromoResponse)
def create_promo(promo: PromoCreate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return PromoService.create_promo(promo, current_user.id, db)

@router.get("/admin/promos", response_model=List[PromoResponse])
def get_promos(db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return PromoService.get_promos(db)

@router.put("/admin/promos/{promo_id}", response_model=PromoResponse)
def update_promo(promo_id: int, promo_data: PromoUpdate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    promo = PromoService.update_promo(promo_id, promo_data, current_user.id, db)
    if not promo:
        raise HTTPException(status_code=404, detail="Promo not found")
    return promo

@router.delete("/admin/promos/{promo_id}")
def delete_promo(promo_id: int, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    if not PromoService.delete_promo(promo_id, current_user.id, db):
        raise HTTPException(status_code=404, detail="Promo not found")
    return {"message": "Promo deleted"}
