# routers/auth.py
"""
Buyer session API.

Login is delegated to the registry; the returned token is kept in an
httpOnly cookie (and returned in the body for Bearer clients).
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status

from config import CART_COOKIE_NAME, COOKIE_MAX_AGE, COOKIE_NAME, COOKIE_SECURE
from dependencies import get_carts, get_registry, get_token, require_identity
from logging_config import get_logger
from schemas.identity import AuthResponse, Identity, LoginRequest
from services.cart_service import CartAggregator
from services.registry import RegistryPort

logger = get_logger("routers.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=AuthResponse, summary="Log in a buyer")
def login(
     body: LoginRequest,
     response: Response,
     registry: RegistryPort = Depends(get_registry),
):
     """
     Authenticate against the registry and set the session cookie.

     - **email**: Buyer email
     - **password**: Buyer password
     """
     auth = registry.login(body.email, body.password)
     response.set_cookie(
          key=COOKIE_NAME,
          value=auth.token,
          httponly=True,
          secure=COOKIE_SECURE,
          samesite="lax",
          max_age=COOKIE_MAX_AGE,
     )
     logger.info("buyer_logged_in", extra={"user_id": auth.user.id, "org_id": auth.user.org_id})
     return auth


@router.post("/logout", status_code=status.HTTP_200_OK, summary="Log out and drop the cart")
def logout(
     request: Request,
     response: Response,
     registry: RegistryPort = Depends(get_registry),
     carts: CartAggregator = Depends(get_carts),
):
     token: Optional[str] = get_token(request)
     if token:
          registry.logout(token)
     session_key = request.cookies.get(CART_COOKIE_NAME)
     if session_key:
          carts.discard(session_key)
     response.delete_cookie(COOKIE_NAME)
     response.delete_cookie(CART_COOKIE_NAME)
     return {"success": True}


@router.get("/me", response_model=Identity, summary="Current buyer")
def me(identity: Identity = Depends(require_identity)):
     return identity
