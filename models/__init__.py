# models/__init__.py
from .base import Base
from .order import Order, OrderLine, LineOutcome
from .cart import CartSession, CartLineRecord
from .holding import CreditHolding
from .certificate import CertificateRecord
from . import immutability  # noqa: F401  (registers append-only listeners)

__all__ = [
     "Base",
     "Order",
     "OrderLine",
     "LineOutcome",
     "CartSession",
     "CartLineRecord",
     "CreditHolding",
     "CertificateRecord",
]
