from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone


class CreateDonationRequest(BaseModel):
    """Schema for creating a new donation"""
    amount_cents: int = Field(..., gt=0, strict=True, description="Amount in minor currency units")
    registration_id: Optional[int] = Field(None, description="Registration this donation relates to")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form payload stored with the donation")

    class Config:
        json_schema_extra = {
            "example": {
                "amount_cents": 500,
                "registration_id": 1,
                "metadata": {"note": "Good luck on race day!"}
            }
        }


class CreateDonationResponse(BaseModel):
    """Schema returned after creating a donation"""
    donation_id: int
    gateway_reference: str
    checkout_url: str


class DonationFilters(BaseModel):
    """Filters for donation listings; timestamp bounds are inclusive"""
    status: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @field_validator("date_from", "date_to")
    @classmethod
    def to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Columns hold naive UTC timestamps
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class PaymentAttemptResponse(BaseModel):
    """Schema for one audit entry"""
    id: int
    status: str
    raw_response: Optional[Dict[str, Any]]
    created_at: datetime

    class Config:
        from_attributes = True


class DonationResponse(BaseModel):
    """Schema for donation responses"""
    id: int
    user_id: str
    registration_id: Optional[int]
    amount_cents: int
    status: str
    gateway_reference: str
    metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("metadata_", "metadata")
    )
    created_at: datetime
    updated_at: datetime
    attempts: List[PaymentAttemptResponse] = []

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "user_id": "5b1c7e9e-0d5c-4f5e-9a43-3b7f0d8f4a11",
                "registration_id": 1,
                "amount_cents": 500,
                "status": "success",
                "gateway_reference": "PAY_q8Vd3...",
                "metadata": {},
                "created_at": "2025-11-21T14:30:00Z",
                "updated_at": "2025-11-21T14:31:10Z",
                "attempts": [
                    {"id": 1, "status": "initiated", "raw_response": {"created_at": "2025-11-21T14:30:00"}, "created_at": "2025-11-21T14:30:00Z"},
                    {"id": 2, "status": "success", "raw_response": {"received_at": "2025-11-21T14:31:10"}, "created_at": "2025-11-21T14:31:10Z"}
                ]
            }
        }


class ConfirmPaymentRequest(BaseModel):
    """Callback body sent by the fake gateway"""
    ref: str = Field(..., min_length=1, description="Gateway reference of the donation")
    status: str = Field(..., min_length=1, description="Outcome reported by the gateway")


class ConfirmPaymentResponse(BaseModel):
    ok: bool = True
