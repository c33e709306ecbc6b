# src/membership/schemas.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional
from packages.schemas import PackageResponse

class MembershipResponse(BaseModel):
    """Schema for membership response."""
    id: int
    user_id: int
    package_id: int
    transaction_id: int
    start_date: datetime
    end_date: datetime
    status: str
    package: Optional[PackageResponse] = None

    model_config = ConfigDict(from_attributes=True)
