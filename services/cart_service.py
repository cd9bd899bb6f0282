# services/cart_service.py
"""
Cart Service - client-scoped, mutable selection of (class, quantity) lines.

A cart is keyed by a client cart session key and stored through an injected
CartStore (in-memory, or SQL for carts that must survive reloads across
worker processes). At most one line exists per class: adding a class that
is already in the cart replaces that line's quantity, so repeating an
identical add is a no-op.

The cart is not authoritative. Supply is re-validated at checkout.
"""
import threading
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from exceptions import InvalidQuantityError, NotFoundError
from models import CartLineRecord, CartSession
from schemas.registry import CreditClass


def new_cart_id() -> str:
     return f"cart_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class CartLine:
     class_id: str
     quantity: int
     class_snapshot: Optional[CreditClass] = None

     @property
     def display_quantity(self) -> int:
          """Quantity clamped to the snapshot's remaining supply (display only)."""
          if self.class_snapshot is None:
               return self.quantity
          return max(0, min(self.quantity, self.class_snapshot.remaining))


@dataclass
class Cart:
     session_key: str
     cart_id: str
     lines: List[CartLine] = field(default_factory=list)
     checkout_attempts: int = 0

     def line(self, class_id: str) -> Optional[CartLine]:
          for line in self.lines:
               if line.class_id == class_id:
                    return line
          return None


@dataclass(frozen=True)
class CartTotals:
     line_count: int
     total_quantity: int


# ---------------------------------------------------------------------------
# Storage port
# ---------------------------------------------------------------------------

class CartStore:
     """Storage port for carts. ``load`` returns None for an unknown session."""

     def load(self, session_key: str) -> Optional[Cart]:
          raise NotImplementedError

     def save(self, cart: Cart) -> None:
          raise NotImplementedError

     def delete(self, session_key: str) -> None:
          raise NotImplementedError


class InMemoryCartStore(CartStore):

     def __init__(self):
          self._carts: Dict[str, Cart] = {}
          self._lock = threading.Lock()

     def load(self, session_key: str) -> Optional[Cart]:
          with self._lock:
               cart = self._carts.get(session_key)
               return replace(cart, lines=list(cart.lines)) if cart else None

     def save(self, cart: Cart) -> None:
          with self._lock:
               self._carts[cart.session_key] = replace(cart, lines=list(cart.lines))

     def delete(self, session_key: str) -> None:
          with self._lock:
               self._carts.pop(session_key, None)


class SqlCartStore(CartStore):
     """Cart rows in cart_sessions / cart_lines, synced line by line."""

     def __init__(self, db: Session):
          self.db = db

     def load(self, session_key: str) -> Optional[Cart]:
          record = self.db.get(CartSession, session_key)
          if record is None:
               return None
          lines = [
               CartLine(
                    class_id=line.class_id,
                    quantity=line.quantity,
                    class_snapshot=CreditClass.model_validate(line.class_snapshot) if line.class_snapshot else None,
               )
               for line in record.lines
          ]
          return Cart(
               session_key=record.session_key,
               cart_id=record.cart_id,
               lines=lines,
               checkout_attempts=record.checkout_attempts,
          )

     def save(self, cart: Cart) -> None:
          record = self.db.get(CartSession, cart.session_key)
          if record is None:
               record = CartSession(session_key=cart.session_key, cart_id=cart.cart_id, checkout_attempts=0)
               self.db.add(record)
          record.cart_id = cart.cart_id
          record.checkout_attempts = cart.checkout_attempts

          existing = {line.class_id: line for line in record.lines}
          wanted = {line.class_id for line in cart.lines}
          for class_id, line in existing.items():
               if class_id not in wanted:
                    record.lines.remove(line)
          for position, line in enumerate(cart.lines):
               snapshot = line.class_snapshot.model_dump(mode="json", by_alias=True) if line.class_snapshot else None
               row = existing.get(line.class_id)
               if row is None:
                    record.lines.append(CartLineRecord(
                         class_id=line.class_id,
                         quantity=line.quantity,
                         position=position,
                         class_snapshot=snapshot,
                    ))
               else:
                    row.quantity = line.quantity
                    row.position = position
                    row.class_snapshot = snapshot
          self.db.flush()

     def delete(self, session_key: str) -> None:
          record = self.db.get(CartSession, session_key)
          if record is not None:
               self.db.delete(record)
               self.db.flush()


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

def _check_quantity(quantity) -> int:
     if isinstance(quantity, bool) or not isinstance(quantity, int):
          raise InvalidQuantityError(quantity, "quantity must be an integer")
     return quantity


class CartAggregator:
     """Cart operations over a CartStore."""

     def __init__(self, store: CartStore):
          self.store = store

     def get(self, session_key: str) -> Cart:
          """Current cart for a session; an empty cart if none exists yet."""
          cart = self.store.load(session_key)
          if cart is None:
               cart = Cart(session_key=session_key, cart_id=new_cart_id())
          return cart

     def add_or_update(
          self,
          session_key: str,
          class_id: str,
          quantity: int,
          class_snapshot: Optional[CreditClass] = None,
     ) -> Cart:
          """
          Put ``quantity`` of a class in the cart.

          An existing line for the class is replaced in place (keeping its
          position); otherwise the line is appended. Supply is not enforced
          here: the snapshot only bounds the displayed quantity.

          Raises:
               InvalidQuantityError: If quantity < 1
          """
          if _check_quantity(quantity) < 1:
               raise InvalidQuantityError(quantity, "quantity must be at least 1")
          cart = self.get(session_key)
          new_line = CartLine(class_id=class_id, quantity=quantity, class_snapshot=class_snapshot)
          for index, line in enumerate(cart.lines):
               if line.class_id == class_id:
                    cart.lines[index] = new_line
                    break
          else:
               cart.lines.append(new_line)
          self.store.save(cart)
          return cart

     def set_quantity(self, session_key: str, class_id: str, quantity: int) -> Cart:
          """Update a line's quantity; ``quantity <= 0`` removes the line."""
          if _check_quantity(quantity) <= 0:
               return self.remove(session_key, class_id)
          cart = self.get(session_key)
          for index, line in enumerate(cart.lines):
               if line.class_id == class_id:
                    cart.lines[index] = replace(line, quantity=quantity)
                    break
          else:
               raise NotFoundError("cart line", class_id)
          self.store.save(cart)
          return cart

     def remove(self, session_key: str, class_id: str) -> Cart:
          """Drop the line for a class. Removing an absent line is a no-op."""
          cart = self.get(session_key)
          remaining = [line for line in cart.lines if line.class_id != class_id]
          if len(remaining) != len(cart.lines):
               cart.lines = remaining
               self.store.save(cart)
          return cart

     def clear(self, session_key: str) -> Cart:
          """Empty the cart and start a new cart generation (fresh cart_id)."""
          cart = Cart(session_key=session_key, cart_id=new_cart_id())
          self.store.save(cart)
          return cart

     def discard(self, session_key: str) -> None:
          """Forget the session's cart entirely (logout)."""
          self.store.delete(session_key)

     def record_checkout_attempt(self, session_key: str) -> Cart:
          """Note a checkout that settled nothing; the next one reconciles first."""
          cart = self.get(session_key)
          cart.checkout_attempts += 1
          self.store.save(cart)
          return cart

     def totals(self, session_key: str) -> CartTotals:
          return cart_totals(self.get(session_key))


def cart_totals(cart: Cart) -> CartTotals:
     return CartTotals(
          line_count=len(cart.lines),
          total_quantity=sum(line.quantity for line in cart.lines),
     )
