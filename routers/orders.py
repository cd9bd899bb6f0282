# routers/orders.py
"""
Checkout and order history API.

POST /checkout settles the session's cart line by line. Lines that settle
are final even when others fail; the response lists every line's outcome.
POST /purchase buys a single class without touching the cart.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status

from dependencies import get_adapter, get_cart_session_key, get_orders, get_settlement, require_identity
from exceptions import NotFoundError
from schemas.identity import Identity
from schemas.order import OrderListResponse, OrderResponse, PurchaseCreate
from services.order_service import OrderService
from services.registry import AdapterClient
from services.settlement_service import SettlementCoordinator

router = APIRouter(prefix="/api", tags=["orders"])


@router.post(
     "/checkout",
     response_model=OrderResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Check out the current cart"
)
def checkout(
     identity: Identity = Depends(require_identity),
     session_key: str = Depends(get_cart_session_key),
     settlement: SettlementCoordinator = Depends(get_settlement),
):
     """
     Transfer every cart line from the registry to the buyer's org.

     Returns the Order when at least one line settled. When none did, the
     response is 409 CHECKOUT_FAILED with per-line outcomes and the cart is
     kept for a retry.
     """
     result = settlement.checkout(identity, session_key)
     return result.order


@router.post(
     "/purchase",
     response_model=OrderResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Buy one class now"
)
def purchase(
     payload: PurchaseCreate,
     identity: Identity = Depends(require_identity),
     settlement: SettlementCoordinator = Depends(get_settlement),
):
     """
     Single transfer of one class to the buyer's org, recorded as a one-line
     Order. Supply is re-validated first; a line that does not settle is a
     409 CHECKOUT_FAILED with its outcome.
     """
     result = settlement.purchase(identity, payload.class_id, payload.quantity)
     return result.order


@router.get("/orders", response_model=OrderListResponse, summary="Buyer's orders")
def list_orders(
     identity: Identity = Depends(require_identity),
     orders: OrderService = Depends(get_orders),
):
     items = orders.list_orders(identity.id)
     return OrderListResponse(
          orders=[OrderResponse.model_validate(o) for o in items],
          total=len(items),
     )


@router.get("/orders/{order_id}", response_model=OrderResponse, summary="Get an order")
def get_order(
     order_id: str,
     identity: Identity = Depends(require_identity),
     orders: OrderService = Depends(get_orders),
):
     return orders.get_order(order_id, buyer_id=identity.id)


@router.get("/orders/{order_id}/receipts/{receipt_id}", summary="Settlement adapter receipt for an order line")
def get_order_receipt(
     order_id: str,
     receipt_id: str,
     identity: Identity = Depends(require_identity),
     orders: OrderService = Depends(get_orders),
     adapter: Optional[AdapterClient] = Depends(get_adapter),
):
     """Only receipts of the buyer's own settled lines are looked up."""
     order = orders.get_order(order_id, buyer_id=identity.id)
     if receipt_id not in order.transfer_receipt_ids or adapter is None:
          raise NotFoundError("receipt", receipt_id)
     return adapter.get_receipt(receipt_id)


@router.get("/transactions/{tx_hash}", summary="Settlement adapter transaction status")
def get_transaction(
     tx_hash: str,
     identity: Identity = Depends(require_identity),
     adapter: Optional[AdapterClient] = Depends(get_adapter),
):
     if adapter is None:
          raise NotFoundError("transaction", tx_hash)
     return adapter.get_transaction(tx_hash)
