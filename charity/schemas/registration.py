from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime


class CreateRegistrationRequest(BaseModel):
    """Schema for creating a registration"""
    data: Optional[Dict[str, Any]] = Field(None, description="Registration form payload")


class CreateRegistrationResponse(BaseModel):
    id: int


class RegistrationResponse(BaseModel):
    """Schema for registration responses"""
    id: int
    user_id: str
    data: Optional[Dict[str, Any]]
    created_at: datetime

    class Config:
        from_attributes = True
