# models/holding.py
"""
CreditHolding model - local reconciliation cache of registry balances.

The registry is authoritative. Rows here are refreshed from it and adjusted
after registry-confirmed transfers and retirements.
"""
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, UniqueConstraint
from .base import Base, utcnow


class CreditHolding(Base):
     __tablename__ = "credit_holdings"
     __table_args__ = (
          UniqueConstraint("org_id", "class_id", name="uq_credit_holdings_org_class"),
          CheckConstraint("quantity >= 0", name="ck_credit_holdings_quantity_non_negative"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     org_id = Column(String(64), nullable=False, index=True)
     class_id = Column(String(64), nullable=False)
     quantity = Column(Integer, default=0, nullable=False)
     refreshed_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

     def __repr__(self):
          return f"<CreditHolding(org_id={self.org_id}, class_id={self.class_id}, quantity={self.quantity})>"
