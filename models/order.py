# models/order.py
"""
Order model - durable record of a checkout attempt and its settled lines.

An Order holds every line the buyer requested (for display fidelity) with
the outcome of each. Receipts exist only for SETTLED lines. Orders and their
lines are append-only facts; see models/immutability.py.
"""
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class LineOutcome(str, enum.Enum):
     """Per-line settlement outcome."""
     SETTLED = "SETTLED"
     REJECTED = "REJECTED"  # failed supply re-validation, never sent
     FAILED = "FAILED"  # transfer attempted, no receipt obtained
     CANCELLED = "CANCELLED"  # checkout cancelled before this line


class Order(Base):
     """
     Order header. ``id`` is generated per checkout attempt ("order_<hex>").
     """
     __tablename__ = "orders"

     id = Column(String(64), primary_key=True)
     buyer_id = Column(String(64), nullable=False, index=True)
     org_id = Column(String(64), nullable=False, index=True)
     cart_id = Column(String(64), nullable=False, index=True)
     created_at = Column(DateTime, default=utcnow, nullable=False)

     # Relationships
     lines = relationship(
          "OrderLine",
          back_populates="order",
          order_by="OrderLine.position",
          cascade="all",
          lazy="selectin",
     )

     def __repr__(self):
          return f"<Order(id={self.id}, buyer_id={self.buyer_id}, lines={len(self.lines)})>"

     @property
     def transfer_receipt_ids(self) -> list[str]:
          """Receipt ids of settled lines, in line order."""
          return [line.receipt_id for line in self.lines if line.outcome == LineOutcome.SETTLED]

     @property
     def settled_quantity(self) -> int:
          return sum(line.quantity for line in self.lines if line.outcome == LineOutcome.SETTLED)


class OrderLine(Base):
     """One requested cart line and what happened to it."""
     __tablename__ = "order_lines"
     __table_args__ = (
          UniqueConstraint("order_id", "position", name="uq_order_lines_order_position"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     order_id = Column(
          String(64),
          ForeignKey("orders.id", ondelete="RESTRICT"),
          nullable=False,
          index=True
     )
     position = Column(Integer, nullable=False)
     class_id = Column(String(64), nullable=False, index=True)
     quantity = Column(Integer, nullable=False)
     outcome = Column(
          Enum(LineOutcome, name="order_line_outcome", create_constraint=True),
          nullable=False
     )
     receipt_id = Column(String(128), nullable=True, unique=True)
     error_code = Column(String(64), nullable=True)
     error_detail = Column(String(500), nullable=True)
     class_snapshot = Column(JSON, nullable=True)

     # Relationships
     order = relationship("Order", back_populates="lines")

     def __repr__(self):
          return (
               f"<OrderLine(order_id={self.order_id}, class_id={self.class_id}, "
               f"quantity={self.quantity}, outcome='{self.outcome.value}')>"
          )
