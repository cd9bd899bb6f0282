# schemas/order.py
"""
Pydantic schemas for checkout and order API responses.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.order import LineOutcome


class OrderLineResponse(BaseModel):
     position: int
     class_id: str
     quantity: int
     outcome: LineOutcome
     receipt_id: Optional[str] = None
     error_code: Optional[str] = None
     error_detail: Optional[str] = None

     model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
     id: str
     buyer_id: str
     org_id: str
     created_at: datetime
     lines: List[OrderLineResponse]
     transfer_receipt_ids: List[str]
     settled_quantity: int

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": "order_5f0c8e4b9d3a4b1e8f7a6c2d1e0b9a87",
                    "buyer_id": "user_001",
                    "org_id": "org_001",
                    "created_at": "2026-01-31T10:30:00",
                    "lines": [
                         {
                              "position": 0,
                              "class_id": "C1",
                              "quantity": 50,
                              "outcome": "SETTLED",
                              "receipt_id": "rcpt_000001"
                         }
                    ],
                    "transfer_receipt_ids": ["rcpt_000001"],
                    "settled_quantity": 50
               }
          }
     )


class OrderListResponse(BaseModel):
     orders: List[OrderResponse]
     total: int


class PurchaseCreate(BaseModel):
     """Buy one class directly, bypassing the cart."""
     class_id: str = Field(..., min_length=1, description="Credit class ID")
     quantity: int = Field(..., description="Credits to buy (>= 1)")

     model_config = ConfigDict(
          alias_generator=to_camel,
          populate_by_name=True,
          json_schema_extra={
               "example": {
                    "classId": "C1",
                    "quantity": 50
               }
          }
     )
