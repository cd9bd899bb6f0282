# services/order_service.py
"""
Order Service - persistence of checkout outcomes.

Orders are append-only: created once per checkout that settled at least
one line, never edited afterwards.
"""
import uuid
from dataclasses import dataclass, asdict
from typing import Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from exceptions import NotFoundError
from models import Order, OrderLine, LineOutcome
from schemas.identity import Identity
from schemas.registry import CreditClass


def new_order_id() -> str:
     """Unique per checkout attempt, including retries of the same cart."""
     return f"order_{uuid.uuid4().hex}"


@dataclass
class LineResult:
     """Outcome of one cart line in a settlement run."""
     position: int
     class_id: str
     quantity: int
     outcome: LineOutcome
     receipt_id: Optional[str] = None
     error_code: Optional[str] = None
     error_detail: Optional[str] = None
     class_snapshot: Optional[CreditClass] = None

     @property
     def settled(self) -> bool:
          return self.outcome == LineOutcome.SETTLED

     def to_dict(self) -> dict:
          data = asdict(self)
          data["outcome"] = self.outcome.value
          data["class_snapshot"] = (
               self.class_snapshot.model_dump(mode="json", by_alias=True) if self.class_snapshot else None
          )
          return data


class OrderService:

     def __init__(self, db: Session):
          self.db = db

     def create_order(self, identity: Identity, cart_id: str, results: list[LineResult]) -> Order:
          """Persist an Order holding every requested line and its outcome."""
          order = Order(
               id=new_order_id(),
               buyer_id=identity.id,
               org_id=identity.org_id,
               cart_id=cart_id,
          )
          for result in results:
               order.lines.append(OrderLine(
                    position=result.position,
                    class_id=result.class_id,
                    quantity=result.quantity,
                    outcome=result.outcome,
                    receipt_id=result.receipt_id,
                    error_code=result.error_code,
                    error_detail=result.error_detail[:500] if result.error_detail else None,
                    class_snapshot=(
                         result.class_snapshot.model_dump(mode="json", by_alias=True)
                         if result.class_snapshot else None
                    ),
               ))
          self.db.add(order)
          self.db.flush()
          return order

     def get_order(self, order_id: str, buyer_id: Optional[str] = None) -> Order:
          """
          Fetch an order. When ``buyer_id`` is given, orders of other buyers
          are reported as not found.
          """
          order = self.db.get(Order, order_id)
          if order is None or (buyer_id is not None and order.buyer_id != buyer_id):
               raise NotFoundError("order", order_id)
          return order

     def find_order_for_cart(self, buyer_id: str, cart_id: str) -> Optional[Order]:
          return (
               self.db.query(Order)
               .filter(Order.buyer_id == buyer_id, Order.cart_id == cart_id)
               .order_by(desc(Order.created_at))
               .first()
          )

     def list_orders(self, buyer_id: str) -> list[Order]:
          return (
               self.db.query(Order)
               .filter(Order.buyer_id == buyer_id)
               .order_by(desc(Order.created_at), desc(Order.id))
               .all()
          )
