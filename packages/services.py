# src/packages/services.py
import logging
from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from packages.models import Package
from packages.schemas import PackageCreate, PackageUpdate, PackageResponse
from auth.services import AuthService

logger = logging.getLogger(__name__)

class PackageService:
    @staticmethod
    def find_by_id(package_id: int, db: Session) -> Optional[Package]:
        return db.query(Package).filter(Package.id == package_id).first()

    @staticmethod
    def find_all_active(db: Session) -> List[PackageResponse]:
        """Active packages, cheapest first."""
        packages = db.query(Package).filter(Package.is_active == True).order_by(Package.price.asc()).all()
        return [PackageResponse.model_validate(p) for p in packages]

    @staticmethod
    def find_all(db: Session) -> List[PackageResponse]:
        return [PackageResponse.model_validate(p) for p in db.query(Package).order_by(Package.id.desc()).all()]

    @staticmethod
    def create_package(package_data: PackageCreate, admin_id: int, db: Session) -> PackageResponse:
        if db.query(Package).filter(Package.name == package_data.name).first():
            raise HTTPException(status_code=400, detail="Package name already exists")
        db_package = Package(**package_data.model_dump())
        db.add(db_package)
        db.flush()
        AuthService.log_admin_action(admin_id, f"Created package {db_package.id} ({db_package.name})", db)
        db.commit()
        db.refresh(db_package)
        return PackageResponse.model_validate(db_package)

    @staticmethod
    def update_package(package_id: int, package_data: PackageUpdate, admin_id: int, db: Session) -> Optional[PackageResponse]:
        db_package = PackageService.find_by_id(package_id, db)
        if not db_package:
            return None
        for key, value in package_data.model_dump(exclude_unset=True).items():
            setattr(db_package, key, value)
        AuthService.log_admin_action(admin_id, f"Updated package {package_id}", db)
        db.commit()
        db.refresh(db_package)
        return PackageResponse.model_validate(db_package)

    @staticmethod
    def deactivate_package(package_id: int, admin_id: int, db: Session) -> bool:
        """Soft delete: packages referenced by transactions must stay readable."""
        db_package = PackageService.find_by_id(package_id, db)
        if not db_package:
            return False
        db_package.is_active = False
        AuthService.log_admin_action(admin_id, f"Deactivated package {package_id}", db)
        db.commit()
        logger.info(f"Package {package_id} deactivated by admin {admin_id}")
        return True
