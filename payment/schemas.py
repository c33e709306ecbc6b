# src/payment/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from packages.schemas import PackageResponse


class NotificationOutcome(str, Enum):
    """What an inbound gateway status means for the local transaction."""
    SETTLEMENT = "settlement"
    CAPTURE_ACCEPT = "capture_accept"
    CAPTURE_CHALLENGE = "capture_challenge"
    CAPTURE_DENY = "capture_deny"
    FAILED = "failed"  # expire, cancel, deny
    PENDING = "pending"
    UNRECOGNIZED = "unrecognized"


FAILED_STATUSES = ("expire", "cancel", "deny")


class PaymentNotification(BaseModel):
    """Webhook body (also the Core API status body). Unknown fields are kept."""
    transaction_status: str = Field(min_length=1)
    order_id: str = Field(min_length=1)
    gross_amount: str = Field(min_length=1)
    status_code: str = Field(min_length=1)
    signature_key: str = Field(min_length=1)
    fraud_status: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @property
    def outcome(self) -> NotificationOutcome:
        status = self.transaction_status
        if status == "settlement":
            return NotificationOutcome.SETTLEMENT
        if status == "capture":
            if self.fraud_status == "accept":
                return NotificationOutcome.CAPTURE_ACCEPT
            if self.fraud_status == "challenge":
                return NotificationOutcome.CAPTURE_CHALLENGE
            if self.fraud_status == "deny":
                return NotificationOutcome.CAPTURE_DENY
            return NotificationOutcome.UNRECOGNIZED
        if status in FAILED_STATUSES:
            return NotificationOutcome.FAILED
        if status == "pending":
            return NotificationOutcome.PENDING
        return NotificationOutcome.UNRECOGNIZED


class TransactionCreate(BaseModel):
    """Schema for a purchase intent."""
    package_id: int
    promo_code: Optional[str] = None

class TransactionCreateResponse(BaseModel):
    """Schema for purchase intent response."""
    message: str
    order_id: str
    payment_token: str
    redirect_url: Optional[str] = None
    final_amount: Decimal
    discount_amount: Decimal

class TransactionUser(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)

class TransactionResponse(BaseModel):
    """Schema for transaction response."""
    id: int
    order_id: str
    user_id: int
    package_id: int
    promo_code_id: Optional[int]
    amount: Decimal
    discount_amount: Decimal
    status: str
    payment_gateway: str
    created_at: datetime
    package: Optional[PackageResponse] = None
    user: Optional[TransactionUser] = None

    model_config = ConfigDict(from_attributes=True)

class TransactionPage(BaseModel):
    items: list[TransactionResponse]
    total: int
    page: int
    limit: int

class PaymentResultResponse(BaseModel):
    """Outcome of processing a notification, refund or resync."""
    message: str
    status: Optional[str] = None
    transaction_id: Optional[str] = None
    membership_id: Optional[int] = None
