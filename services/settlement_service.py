# services/settlement_service.py
"""
Settlement Coordinator - turns a cart into registry transfers and an Order.

Checkout flow:
1. Re-read every line's class and re-validate quantity <= remaining.
   Lines that fail are REJECTED (InsufficientSupply) and never sent.
2. Transfer surviving lines one at a time, in cart order, each carrying an
   idempotency key derived from (buyer id, class id, cart id).
3. Record the receipt of each confirmed transfer and reconcile the
   Balance Store.
4. A failing line is marked FAILED and the next line is attempted.
   Confirmed transfers are final: nothing is rolled back.
5. If any line settled, persist an Order (all requested lines, receipts in
   line order) and clear the cart. Otherwise raise CheckoutFailedError and
   leave the cart as it was.

A transfer whose outcome is unknown (timeout after sending) is only retried
after the registry has been asked for a receipt under the same key. A
response without a receipt id is a failure.

A direct purchase settles one class the same way, with a fresh purchase id
in place of the cart id.

Two concurrent checkouts of one cart share idempotency keys and therefore
receipts. The one that records second returns the Order already recorded.
"""
import hashlib
import threading
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import MAX_TRANSFER_ATTEMPTS
from exceptions import (
     CheckoutFailedError,
     InsufficientSupplyError,
     InvalidQuantityError,
     MarketError,
     NotFoundError,
     RegistryError,
     RegistryUnavailableError,
     TransferFailedError,
     UnauthenticatedError,
)
from logging_config import LogContext, get_logger
from models import LineOutcome, Order
from schemas.identity import Identity
from schemas.registry import ClassStatus, CreditClass, TransferReceipt, TransferRequest
from services.balance_service import BalanceStore
from services.cart_service import CartAggregator, CartLine
from services.catalog_service import CatalogService
from services.order_service import LineResult, OrderService
from services.registry.base import RegistryPort

logger = get_logger("services.settlement")


def idempotency_key(buyer_id: str, class_id: str, cart_id: str) -> str:
     """Deterministic transfer key: SHA-256 hex of buyer_id|class_id|cart_id."""
     return hashlib.sha256("|".join([buyer_id, class_id, cart_id]).encode("utf-8")).hexdigest()


def new_purchase_id() -> str:
     return f"purchase_{uuid.uuid4().hex}"


@dataclass
class SettlementResult:
     order: Order
     outcomes: list[LineResult]

     @property
     def settled_count(self) -> int:
          return sum(1 for o in self.outcomes if o.settled)


class SettlementCoordinator:

     def __init__(
          self,
          db: Session,
          registry: RegistryPort,
          catalog: CatalogService,
          balances: BalanceStore,
          carts: CartAggregator,
          orders: Optional[OrderService] = None,
          max_transfer_attempts: int = MAX_TRANSFER_ATTEMPTS,
     ):
          self.db = db
          self.registry = registry
          self.catalog = catalog
          self.balances = balances
          self.carts = carts
          self.orders = orders or OrderService(db)
          self.max_transfer_attempts = max(1, max_transfer_attempts)

     # ------------------------------------------------------------------
     # Checkout
     # ------------------------------------------------------------------

     def checkout(
          self,
          identity: Optional[Identity],
          session_key: str,
          cancel_event: Optional[threading.Event] = None,
     ) -> SettlementResult:
          """
          Settle the session's cart and persist the resulting Order.

          Raises:
               UnauthenticatedError: If no buyer identity was resolved
               CheckoutFailedError: If the cart is empty or no line settled
          """
          if identity is None:
               raise UnauthenticatedError()

          cart = self.carts.get(session_key)
          if not cart.lines:
               raise CheckoutFailedError("empty_cart")

          with LogContext.bind(actor_id=identity.id, session_key=session_key):
               outcomes = self.settle(
                    identity,
                    cart.lines,
                    cart.cart_id,
                    reconcile_first=cart.checkout_attempts > 0,
                    cancel_event=cancel_event,
               )

               if not any(o.settled for o in outcomes):
                    self.carts.record_checkout_attempt(session_key)
                    self._no_line_settled(cart.cart_id, outcomes)
               return self._record_order(identity, cart.cart_id, outcomes, session_key)

     def purchase(
          self,
          identity: Optional[Identity],
          class_id: str,
          quantity: int,
     ) -> SettlementResult:
          """
          Buy one class directly, without the cart.

          The line goes through the same settlement as a cart line. Each call
          gets its own purchase id, which stands in for the cart id in the
          idempotency key.

          Raises:
               UnauthenticatedError: If no buyer identity was resolved
               InvalidQuantityError: If quantity < 1
               CheckoutFailedError: If the line did not settle
          """
          if identity is None:
               raise UnauthenticatedError()
          if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
               raise InvalidQuantityError(quantity)

          purchase_id = new_purchase_id()
          with LogContext.bind(actor_id=identity.id):
               outcomes = self.settle(identity, [CartLine(class_id=class_id, quantity=quantity)], purchase_id)
               if not outcomes[0].settled:
                    self._no_line_settled(purchase_id, outcomes)
               return self._record_order(identity, purchase_id, outcomes)

     def settle(
          self,
          identity: Optional[Identity],
          lines: Sequence[CartLine],
          cart_id: str,
          reconcile_first: bool = False,
          cancel_event: Optional[threading.Event] = None,
     ) -> list[LineResult]:
          """
          Attempt every line sequentially and report one LineResult per line.

          ``reconcile_first`` looks up an existing receipt for each line
          before transferring (used when an earlier checkout of the same
          cart ended without a known outcome). A set ``cancel_event`` stops
          further transfers; remaining lines are CANCELLED.
          """
          if identity is None:
               raise UnauthenticatedError()

          results: list[LineResult] = []
          for position, line in enumerate(lines):
               if cancel_event is not None and cancel_event.is_set():
                    results.append(LineResult(
                         position=position,
                         class_id=line.class_id,
                         quantity=line.quantity,
                         outcome=LineOutcome.CANCELLED,
                         error_code="CANCELLED",
                         error_detail="checkout cancelled before this line",
                         class_snapshot=line.class_snapshot,
                    ))
                    continue
               results.append(self._settle_line(identity, position, line, cart_id, reconcile_first))
          return results

     # ------------------------------------------------------------------
     # Per-line
     # ------------------------------------------------------------------

     def _settle_line(
          self,
          identity: Identity,
          position: int,
          line: CartLine,
          cart_id: str,
          reconcile_first: bool,
     ) -> LineResult:
          result = LineResult(
               position=position,
               class_id=line.class_id,
               quantity=line.quantity,
               outcome=LineOutcome.FAILED,
               class_snapshot=line.class_snapshot,
          )
          key = idempotency_key(identity.id, line.class_id, cart_id)

          if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity < 1:
               return self._reject(result, InvalidQuantityError(line.quantity))

          if reconcile_first:
               try:
                    existing = self.registry.find_transfer(key)
               except RegistryError as e:
                    return self._fail(result, TransferFailedError(line.class_id, f"receipt lookup failed: {e}"))
               if existing is not None and existing.receipt_id:
                    return self._settled(result, identity, existing, reconciled=True)

          try:
               credit_class = self.catalog.get_class(line.class_id)
          except NotFoundError as e:
               return self._reject(result, e)
          except RegistryError as e:
               return self._fail(result, TransferFailedError(line.class_id, f"class re-validation failed: {e}"))
          result.class_snapshot = credit_class

          rejection = self._check_supply(line, credit_class)
          if rejection is not None:
               return self._reject(result, rejection)

          request = TransferRequest(
               to_org_id=identity.org_id,
               class_id=line.class_id,
               quantity=line.quantity,
               idempotency_key=key,
          )
          return self._transfer(result, identity, request)

     def _check_supply(self, line: CartLine, credit_class: CreditClass) -> Optional[InsufficientSupplyError]:
          """A class that is not FINALIZED has no purchasable supply."""
          available = credit_class.remaining if credit_class.status == ClassStatus.FINALIZED else 0
          if line.quantity > available:
               return InsufficientSupplyError(line.class_id, line.quantity, available)
          return None

     def _transfer(self, result: LineResult, identity: Identity, request: TransferRequest) -> LineResult:
          attempt = 0
          while True:
               attempt += 1
               try:
                    receipt = self.registry.transfer(request)
               except RegistryUnavailableError as e:
                    if e.ambiguous:
                         # The transfer may have been applied; ask before sending it again.
                         try:
                              existing = self.registry.find_transfer(request.idempotency_key)
                         except RegistryError as lookup_error:
                              logger.error(
                                   "transfer_outcome_unknown",
                                   extra={"class_id": request.class_id, "cause": str(lookup_error)},
                              )
                              return self._fail(result, TransferFailedError(
                                   request.class_id, f"outcome unknown: {e}; receipt lookup failed: {lookup_error}"
                              ))
                         if existing is not None and existing.receipt_id:
                              return self._settled(result, identity, existing, reconciled=True)
                    if attempt >= self.max_transfer_attempts:
                         return self._fail(result, TransferFailedError(request.class_id, str(e)))
                    logger.warning(
                         "transfer_retry",
                         extra={"class_id": request.class_id, "attempt": attempt, "cause": str(e)},
                    )
                    continue
               except MarketError as e:
                    return self._fail(result, TransferFailedError(request.class_id, f"{e.code}: {e}"))

               if not receipt.receipt_id:
                    return self._fail(result, TransferFailedError(request.class_id, "missing_receipt"))
               return self._settled(result, identity, receipt)

     # ------------------------------------------------------------------
     # Finalization
     # ------------------------------------------------------------------

     def _no_line_settled(self, cart_id: str, outcomes: list[LineResult]) -> None:
          self.db.commit()
          logger.warning(
               "checkout_failed",
               extra={
                    "cart_id": cart_id,
                    "line_count": len(outcomes),
                    "outcomes": [o.outcome.value for o in outcomes],
               },
          )
          raise CheckoutFailedError("no_line_settled", outcomes)

     def _record_order(
          self,
          identity: Identity,
          cart_id: str,
          outcomes: list[LineResult],
          session_key: Optional[str] = None,
     ) -> SettlementResult:
          try:
               order = self.orders.create_order(identity, cart_id, outcomes)
          except IntegrityError:
               # A concurrent checkout of the same cart got the same receipts
               # back from the registry and recorded them first.
               self.db.rollback()
               order = self.orders.find_order_for_cart(identity.id, cart_id)
               if order is None:
                    raise CheckoutFailedError("receipt_already_recorded", outcomes)
               logger.warning("checkout_already_recorded", extra={"order_id": order.id, "cart_id": cart_id})
               if session_key is not None and self.carts.get(session_key).cart_id == cart_id:
                    self.carts.clear(session_key)
               self.db.commit()
               return SettlementResult(order=order, outcomes=outcomes)

          if session_key is not None:
               self.carts.clear(session_key)
          self.db.commit()

          result = SettlementResult(order=order, outcomes=outcomes)
          logger.info(
               "checkout_completed",
               extra={
                    "order_id": order.id,
                    "cart_id": cart_id,
                    "settled": result.settled_count,
                    "line_count": len(outcomes),
               },
          )
          return result

     # ------------------------------------------------------------------
     # Outcome helpers
     # ------------------------------------------------------------------

     def _settled(
          self,
          result: LineResult,
          identity: Identity,
          receipt: TransferReceipt,
          reconciled: bool = False,
     ) -> LineResult:
          quantity = receipt.quantity if receipt.quantity else result.quantity
          if quantity != result.quantity:
               logger.warning(
                    "receipt_quantity_mismatch",
                    extra={"class_id": result.class_id, "requested": result.quantity, "receipt_quantity": quantity},
               )
          result.outcome = LineOutcome.SETTLED
          result.receipt_id = receipt.receipt_id
          self.balances.apply_transfer_in(identity.org_id, result.class_id, quantity)
          logger.info(
               "transfer_settled",
               extra={
                    "class_id": result.class_id,
                    "quantity": quantity,
                    "receipt_id": receipt.receipt_id,
                    "reconciled": reconciled,
               },
          )
          return result

     def _reject(self, result: LineResult, error: MarketError) -> LineResult:
          result.outcome = LineOutcome.REJECTED
          result.error_code = error.code
          result.error_detail = str(error)
          logger.info("line_rejected", extra={"class_id": result.class_id, "error_code": error.code})
          return result

     def _fail(self, result: LineResult, error: TransferFailedError) -> LineResult:
          result.outcome = LineOutcome.FAILED
          result.error_code = error.code
          result.error_detail = error.cause
          logger.warning("line_failed", extra={"class_id": result.class_id, "cause": error.cause})
          return result
