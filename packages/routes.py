# src/packages/routes.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from packages.services import PackageService
from packages.schemas import PackageCreate, PackageUpdate, PackageResponse
from auth.routes import check_admin_role
from auth.models import User
from database import get_db

router = APIRouter(tags=["packages"])

@router.get("/packages", response_model=List[PackageResponse])
def get_active_packages(db: Session = Depends(get_db)):
    """List packages available for purchase."""
    return PackageService.find_all_active(db)

@router.get("/admin/packages", response_model=List[PackageResponse])
def get_packages(db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return PackageService.find_all(db)

@router.post("/admin/packages", response_model=PackageResponse)
def create_package(package_data: PackageCreate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return PackageService.create_package(package_data, current_user.id, db)

@router.put("/admin/packages/{package_id}", response_model=PackageResponse)
def update_package(package_id: int, package_data: PackageUpdate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    package = PackageService.update_package(package_id, package_data, current_user.id, db)
    if not package:
        raise HTTPException(status_code=404, detail="Package not found")
    return package

@router.delete("/admin/packages/{package_id}")
def delete_package(package_id: int, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    if not PackageService.deactivate_package(package_id, current_user.id, db):
        raise HTTPException(status_code=404, detail="Package not found")
    return {"message": "Package deactivated"}
