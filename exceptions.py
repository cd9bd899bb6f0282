# exceptions.py
"""
Typed exception hierarchy for the carbon market core.

Every error carries a class-level ``code`` (machine-readable, API-safe), an
``http_status`` used by the API layer, and its context as attributes so it
can be logged or serialized without parsing the message.

     MarketError
     |
     +-- UnauthenticatedError          UNAUTHENTICATED
     +-- NotFoundError                 NOT_FOUND
     +-- ValidationError
     |   +-- InvalidQuantityError      INVALID_QUANTITY
     |   +-- InvalidAttestationError   INVALID_ATTESTATION
     |   +-- InsufficientSupplyError   INSUFFICIENT_SUPPLY
     |   +-- InsufficientBalanceError  INSUFFICIENT_BALANCE
     +-- SettlementError
     |   +-- TransferFailedError       TRANSFER_FAILED
     |   +-- CheckoutFailedError       CHECKOUT_FAILED
     +-- RegistryError
     |   +-- RegistryUnavailableError  REGISTRY_UNAVAILABLE
     |   +-- RegistryRejectedError     REGISTRY_REJECTED
     +-- ImmutableRecordError          IMMUTABLE_RECORD

Validation errors are recoverable and never retried automatically.
RegistryUnavailableError with ``ambiguous=True`` means the request may have
reached the registry; callers must check for an existing result before
issuing it again.
"""

from typing import Any


class MarketError(Exception):
     """Base exception for all carbon market core errors."""

     code: str = "MARKET_ERROR"
     http_status: int = 500

     def to_dict(self) -> dict[str, Any]:
          """Structured payload for API responses and logs."""
          payload: dict[str, Any] = {"error": self.code, "detail": str(self)}
          for key, val in vars(self).items():
               if not key.startswith("_"):
                    payload[key] = val
          return payload


class UnauthenticatedError(MarketError):
     """No resolved buyer identity for an operation that requires one."""

     code: str = "UNAUTHENTICATED"
     http_status: int = 401

     def __init__(self, message: str = "Authentication required"):
          super().__init__(message)


class NotFoundError(MarketError):
     """Unknown project, class, order, cart line or certificate."""

     code: str = "NOT_FOUND"
     http_status: int = 404

     def __init__(self, kind: str, entity_id: str):
          self.kind = kind
          self.entity_id = entity_id
          super().__init__(f"{kind} not found: {entity_id}")


# Validation errors


class ValidationError(MarketError):
     """Base class for caller-correctable input errors."""

     code: str = "VALIDATION_ERROR"
     http_status: int = 422


class InvalidQuantityError(ValidationError):
     code: str = "INVALID_QUANTITY"

     def __init__(self, quantity: Any, reason: str = "quantity must be a positive integer"):
          self.quantity = quantity
          super().__init__(f"Invalid quantity {quantity!r}: {reason}")


class InvalidAttestationError(ValidationError):
     """Retirement purpose, beneficiary or memo out of bounds."""

     code: str = "INVALID_ATTESTATION"

     def __init__(self, field: str, reason: str):
          self.field = field
          super().__init__(f"Invalid {field}: {reason}")


class InsufficientSupplyError(ValidationError):
     """Requested quantity exceeds the class's live remaining supply."""

     code: str = "INSUFFICIENT_SUPPLY"
     http_status: int = 409

     def __init__(self, class_id: str, requested: int, remaining: int):
          self.class_id = class_id
          self.requested = requested
          self.remaining = remaining
          super().__init__(
               f"Insufficient supply for class {class_id}: "
               f"requested {requested}, remaining {remaining}"
          )


class InsufficientBalanceError(ValidationError):
     """Requested quantity exceeds the owner's holding of a class."""

     code: str = "INSUFFICIENT_BALANCE"
     http_status: int = 409

     def __init__(self, org_id: str, class_id: str, requested: int, held: int):
          self.org_id = org_id
          self.class_id = class_id
          self.requested = requested
          self.held = held
          super().__init__(
               f"Insufficient balance for org {org_id} in class {class_id}: "
               f"requested {requested}, held {held}"
          )


# Settlement errors


class SettlementError(MarketError):
     code: str = "SETTLEMENT_ERROR"
     http_status: int = 409


class TransferFailedError(SettlementError):
     """A single line's registry transfer did not produce a receipt."""

     code: str = "TRANSFER_FAILED"
     http_status: int = 502

     def __init__(self, class_id: str, cause: str):
          self.class_id = class_id
          self.cause = cause
          super().__init__(f"Transfer failed for class {class_id}: {cause}")


class CheckoutFailedError(SettlementError):
     """
     Terminal for one checkout attempt: no line settled.

     The cart is left untouched so the buyer can retry.
     """

     code: str = "CHECKOUT_FAILED"

     def __init__(self, reason: str, outcomes: list | None = None):
          self.reason = reason
          self.outcomes = outcomes or []
          super().__init__(f"Checkout failed: {reason}")

     def to_dict(self) -> dict[str, Any]:
          payload = super().to_dict()
          payload["outcomes"] = [
               o.to_dict() if hasattr(o, "to_dict") else o for o in self.outcomes
          ]
          return payload


# Registry boundary errors


class RegistryError(MarketError):
     code: str = "REGISTRY_ERROR"
     http_status: int = 502


class RegistryUnavailableError(RegistryError):
     """
     Transport-level failure talking to the registry.

     ``ambiguous`` is True when the request may have been applied (timeout
     or dropped connection after sending).
     """

     code: str = "REGISTRY_UNAVAILABLE"
     http_status: int = 503

     def __init__(self, endpoint: str, cause: str, ambiguous: bool = False):
          self.endpoint = endpoint
          self.cause = cause
          self.ambiguous = ambiguous
          super().__init__(f"Registry unavailable at {endpoint}: {cause}")


class RegistryRejectedError(RegistryError):
     """The registry answered and refused the request."""

     code: str = "REGISTRY_REJECTED"

     def __init__(self, endpoint: str, status: int, detail: str):
          self.endpoint = endpoint
          self.status = status
          self.registry_detail = detail
          super().__init__(f"Registry rejected {endpoint} ({status}): {detail}")


class ImmutableRecordError(MarketError):
     """Attempt to modify or delete an append-only record."""

     code: str = "IMMUTABLE_RECORD"

     def __init__(self, entity_type: str, entity_id: str):
          self.entity_type = entity_type
          self.entity_id = entity_id
          super().__init__(f"{entity_type} {entity_id} is immutable")
