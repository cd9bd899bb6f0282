# schemas/cart.py
"""
Pydantic schemas for the cart API.
"""
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from .registry import CreditClass


class CartLineCreate(BaseModel):
     """Add a class to the cart (merges with an existing line for the class)."""
     class_id: str = Field(..., min_length=1, description="Credit class ID")
     quantity: int = Field(..., description="Credits to buy (>= 1)")

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "class_id": "C1",
                    "quantity": 50
               }
          }
     )


class CartLineUpdate(BaseModel):
     """Set a line's quantity; zero or less removes the line."""
     quantity: int


class CartLineResponse(BaseModel):
     class_id: str
     quantity: int
     display_quantity: int = Field(..., description="Quantity clamped to the snapshot's remaining supply")
     class_snapshot: Optional[CreditClass] = None


class CartResponse(BaseModel):
     cart_id: str
     lines: List[CartLineResponse]
     line_count: int
     total_quantity: int
     checkout_attempts: int = 0
