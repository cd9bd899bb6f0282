# models/cart.py
"""
Cart persistence for the SQL cart store.

A cart belongs to a client cart session (``session_key``). ``cart_id``
identifies the current cart generation and is rotated every time the cart
is cleared, so settlement idempotency keys never collide across carts.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class CartSession(Base):
     __tablename__ = "cart_sessions"

     session_key = Column(String(64), primary_key=True)
     cart_id = Column(String(64), nullable=False)
     checkout_attempts = Column(Integer, default=0, nullable=False)
     updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

     # Relationships
     lines = relationship(
          "CartLineRecord",
          back_populates="session",
          order_by="CartLineRecord.position",
          cascade="all, delete-orphan",
     )

     def __repr__(self):
          return f"<CartSession(session_key={self.session_key}, cart_id={self.cart_id})>"


class CartLineRecord(Base):
     """One (class, quantity) line; at most one per class within a session."""
     __tablename__ = "cart_lines"
     __table_args__ = (
          UniqueConstraint("session_key", "class_id", name="uq_cart_lines_session_class"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     session_key = Column(
          String(64),
          ForeignKey("cart_sessions.session_key", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     position = Column(Integer, nullable=False)
     class_id = Column(String(64), nullable=False)
     quantity = Column(Integer, nullable=False)
     class_snapshot = Column(JSON, nullable=True)  # display-only copy of the class

     # Relationships
     session = relationship("CartSession", back_populates="lines")

     def __repr__(self):
          return f"<CartLineRecord(session_key={self.session_key}, class_id={self.class_id}, quantity={self.quantity})>"
