from pydantic import BaseModel
from typing import Dict


class StatsResponse(BaseModel):
    """Aggregate figures for the admin dashboard"""
    registration_count: int
    donation_count: int
    total_amount_cents: int
    by_status: Dict[str, int]

    class Config:
        json_schema_extra = {
            "example": {
                "registration_count": 12,
                "donation_count": 7,
                "total_amount_cents": 42500,
                "by_status": {"pending": 2, "success": 4, "failed": 1}
            }
        }
