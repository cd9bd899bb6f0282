# dependencies.py
"""
Shared FastAPI dependencies: registry access, identity resolution, the
cart session key and the service wiring used by the routers.
"""
import uuid
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from config import CART_COOKIE_NAME, COOKIE_MAX_AGE, COOKIE_NAME, COOKIE_SECURE
from database import get_session
from exceptions import UnauthenticatedError
from logging_config import LogContext
from schemas.identity import Identity
from services import (
    BalanceStore,
    CartAggregator,
    CatalogService,
    OrderService,
    RetirementIssuer,
    SettlementCoordinator,
    SqlCartStore,
)
from services.registry import AdapterClient, RegistryPort


def get_registry(request: Request) -> RegistryPort:
    return request.app.state.registry


def get_adapter(request: Request) -> Optional[AdapterClient]:
    return getattr(request.app.state, "adapter", None)


def get_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, else the session cookie."""
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return request.cookies.get(COOKIE_NAME)


def get_identity_optional(
    request: Request,
    registry: RegistryPort = Depends(get_registry),
) -> Optional[Identity]:
    token = get_token(request)
    if not token:
        return None
    identity = registry.resolve_token(token)
    if identity is not None:
        LogContext.set(actor_id=identity.id)
    return identity


def require_identity(identity: Optional[Identity] = Depends(get_identity_optional)) -> Identity:
    if identity is None:
        raise UnauthenticatedError()
    return identity


def get_cart_session_key(request: Request, response: Response) -> str:
    """Client cart session key; issues a new cookie on first use."""
    session_key = request.cookies.get(CART_COOKIE_NAME)
    if not session_key:
        session_key = uuid.uuid4().hex
        response.set_cookie(
            key=CART_COOKIE_NAME,
            value=session_key,
            httponly=True,
            secure=COOKIE_SECURE,
            samesite="lax",
            max_age=COOKIE_MAX_AGE,
        )
    LogContext.set(session_key=session_key)
    return session_key


# Service wiring


def get_catalog(registry: RegistryPort = Depends(get_registry)) -> CatalogService:
    return CatalogService(registry)


def get_balances(
    db: Session = Depends(get_session),
    registry: RegistryPort = Depends(get_registry),
) -> BalanceStore:
    return BalanceStore(db, registry)


def get_carts(db: Session = Depends(get_session)) -> CartAggregator:
    return CartAggregator(SqlCartStore(db))


def get_orders(db: Session = Depends(get_session)) -> OrderService:
    return OrderService(db)


def get_settlement(
    db: Session = Depends(get_session),
    registry: RegistryPort = Depends(get_registry),
    catalog: CatalogService = Depends(get_catalog),
    balances: BalanceStore = Depends(get_balances),
    carts: CartAggregator = Depends(get_carts),
    orders: OrderService = Depends(get_orders),
) -> SettlementCoordinator:
    return SettlementCoordinator(db, registry, catalog, balances, carts, orders)


def get_retirements(
    db: Session = Depends(get_session),
    registry: RegistryPort = Depends(get_registry),
    balances: BalanceStore = Depends(get_balances),
) -> RetirementIssuer:
    return RetirementIssuer(db, registry, balances)
