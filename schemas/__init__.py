# schemas/__init__.py
from .registry import (
     Project,
     ProjectStatus,
     CreditClass,
     ClassStatus,
     Balance,
     TransferRequest,
     TransferReceipt,
     RetireRequest,
     RetireResult,
     Retirement,
)
from .identity import Identity, Role, AuthResponse, LoginRequest
from .cart import CartLineCreate, CartLineUpdate, CartLineResponse, CartResponse
from .order import OrderLineResponse, OrderResponse, OrderListResponse, PurchaseCreate
from .retirement import RetirementCreate, CertificateResponse, CertificateListResponse, VerificationResponse

__all__ = [
     "Project",
     "ProjectStatus",
     "CreditClass",
     "ClassStatus",
     "Balance",
     "TransferRequest",
     "TransferReceipt",
     "RetireRequest",
     "RetireResult",
     "Retirement",
     "Identity",
     "Role",
     "AuthResponse",
     "LoginRequest",
     "CartLineCreate",
     "CartLineUpdate",
     "CartLineResponse",
     "CartResponse",
     "OrderLineResponse",
     "OrderResponse",
     "OrderListResponse",
     "PurchaseCreate",
     "RetirementCreate",
     "CertificateResponse",
     "CertificateListResponse",
     "VerificationResponse",
]
