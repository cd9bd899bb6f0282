# routers/cart.py
"""
Cart API for the current client session.

The cart is keyed by the cart session cookie, not by the buyer, so a buyer
can build a cart before logging in. Supply is only checked at checkout.
"""
from fastapi import APIRouter, Depends, status

from dependencies import get_cart_session_key, get_carts, get_catalog
from schemas.cart import CartLineCreate, CartLineResponse, CartLineUpdate, CartResponse
from services.cart_service import Cart, CartAggregator, cart_totals
from services.catalog_service import CatalogService

router = APIRouter(prefix="/api/cart", tags=["cart"])


def _build_cart_response(cart: Cart) -> CartResponse:
     totals = cart_totals(cart)
     return CartResponse(
          cart_id=cart.cart_id,
          lines=[
               CartLineResponse(
                    class_id=line.class_id,
                    quantity=line.quantity,
                    display_quantity=line.display_quantity,
                    class_snapshot=line.class_snapshot,
               )
               for line in cart.lines
          ],
          line_count=totals.line_count,
          total_quantity=totals.total_quantity,
          checkout_attempts=cart.checkout_attempts,
     )


@router.get("", response_model=CartResponse, summary="Current cart")
def get_cart(
     session_key: str = Depends(get_cart_session_key),
     carts: CartAggregator = Depends(get_carts),
):
     return _build_cart_response(carts.get(session_key))


@router.post(
     "/lines",
     response_model=CartResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Add a class to the cart"
)
def add_line(
     body: CartLineCreate,
     session_key: str = Depends(get_cart_session_key),
     carts: CartAggregator = Depends(get_carts),
     catalog: CatalogService = Depends(get_catalog),
):
     """
     Put a class in the cart. A class already in the cart has its quantity
     replaced, so repeating the same request leaves a single line.

     - **class_id**: Credit class ID (must exist)
     - **quantity**: Credits to buy, at least 1
     """
     snapshot = catalog.get_class(body.class_id)
     cart = carts.add_or_update(session_key, body.class_id, body.quantity, snapshot)
     return _build_cart_response(cart)


@router.put("/lines/{class_id}", response_model=CartResponse, summary="Set a line's quantity")
def update_line(
     class_id: str,
     body: CartLineUpdate,
     session_key: str = Depends(get_cart_session_key),
     carts: CartAggregator = Depends(get_carts),
):
     """Zero or a negative quantity removes the line."""
     return _build_cart_response(carts.set_quantity(session_key, class_id, body.quantity))


@router.delete("/lines/{class_id}", response_model=CartResponse, summary="Remove a line")
def remove_line(
     class_id: str,
     session_key: str = Depends(get_cart_session_key),
     carts: CartAggregator = Depends(get_carts),
):
     return _build_cart_response(carts.remove(session_key, class_id))


@router.delete("", response_model=CartResponse, summary="Empty the cart")
def clear_cart(
     session_key: str = Depends(get_cart_session_key),
     carts: CartAggregator = Depends(get_carts),
):
     return _build_cart_response(carts.clear(session_key))
