# schemas/retirement.py
"""
Pydantic schemas for retirement and certificate API.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from config import PURPOSE_MAX_LENGTH, BENEFICIARY_MAX_LENGTH, MEMO_MAX_LENGTH


class RetirementCreate(BaseModel):
     """Request body for POST /retirements."""
     class_id: str = Field(..., min_length=1)
     quantity: int = Field(..., description="Credits to retire (>= 1)")
     purpose: str = Field(..., max_length=PURPOSE_MAX_LENGTH, description="Free-text purpose (hashed before leaving this service)")
     beneficiary: str = Field("", max_length=BENEFICIARY_MAX_LENGTH, description="Free-text beneficiary (hashed)")
     memo: Optional[str] = Field(None, max_length=MEMO_MAX_LENGTH)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "class_id": "C1",
                    "quantity": 10,
                    "purpose": "Corporate offset",
                    "beneficiary": "BuyerCo Ltd"
               }
          }
     )


class CertificateResponse(BaseModel):
     """Immutable proof of one retirement."""
     certificate_id: str
     class_id: str
     quantity: int
     purpose_hash: str
     beneficiary_hash: str
     memo: Optional[str] = None
     created_at: Optional[datetime] = None
     org_id: Optional[str] = None

     model_config = ConfigDict(from_attributes=True)


class CertificateListResponse(BaseModel):
     certificates: List[CertificateResponse]
     total: int
     total_retired: int


class VerificationResponse(BaseModel):
     valid: bool
     message: str
     entries_checked: Optional[int] = None
