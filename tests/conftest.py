"""
Shared fixtures: in-memory SQLite, a scripted fixture registry, the demo
buyer identity and the services wired the way the API wires them.
"""

from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import get_session
from exceptions import RegistryRejectedError, RegistryUnavailableError
from models import Base
from schemas.identity import Identity
from schemas.registry import TransferReceipt, TransferRequest
from services import (
    BalanceStore,
    CartAggregator,
    CatalogService,
    OrderService,
    RetirementIssuer,
    SettlementCoordinator,
    SqlCartStore,
)
from services.registry import InMemoryRegistry

DEMO_EMAIL = "buyer@buyerco.local"
DEMO_PASSWORD = "Buyer@123"
SESSION_KEY = "sess_test"


class ScriptedRegistry(InMemoryRegistry):
    """
    InMemoryRegistry with scripted transfer faults.

    ``transfer_faults[class_id]`` is a list consumed one entry per transfer
    call for that class:
      - "timeout_after_apply": transfer is applied, then an ambiguous timeout
      - "timeout_before_apply": ambiguous timeout, nothing applied
      - "refused": connection refused (not ambiguous), nothing applied
      - "rejected": registry answers 409
      - "no_receipt": transfer applied, response carries no receipt id
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.transfer_faults: dict[str, list[str]] = {}
        self.transfer_calls: list[TransferRequest] = []
        self.find_transfer_failures = 0
        self.on_transfer: Optional[Callable[[TransferRequest], None]] = None

    def transfer(self, request: TransferRequest) -> TransferReceipt:
        self.transfer_calls.append(request)
        faults = self.transfer_faults.get(request.class_id) or []
        fault = faults.pop(0) if faults else None
        endpoint = "/credits/transfer"

        if fault == "timeout_before_apply":
            raise RegistryUnavailableError(endpoint, "read timeout", ambiguous=True)
        if fault == "refused":
            raise RegistryUnavailableError(endpoint, "connection refused")
        if fault == "rejected":
            raise RegistryRejectedError(endpoint, 409, "class is locked")

        receipt = super().transfer(request)
        if self.on_transfer is not None:
            self.on_transfer(request)
        if fault == "timeout_after_apply":
            raise RegistryUnavailableError(endpoint, "read timeout", ambiguous=True)
        if fault == "no_receipt":
            return receipt.model_copy(update={"receipt_id": None})
        return receipt

    def find_transfer(self, idempotency_key: str) -> Optional[TransferReceipt]:
        if self.find_transfer_failures > 0:
            self.find_transfer_failures -= 1
            raise RegistryUnavailableError(f"/credits/transfers/{idempotency_key}", "HTTP 503")
        return super().find_transfer(idempotency_key)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def registry():
    return ScriptedRegistry()


@pytest.fixture
def buyer():
    return Identity(id="user_001", org_id="org_001", email=DEMO_EMAIL)


@pytest.fixture
def other_buyer():
    return Identity(id="user_002", org_id="org_002", email="buyer2@greenco.local")


@pytest.fixture
def catalog(registry):
    return CatalogService(registry)


@pytest.fixture
def balances(session, registry):
    return BalanceStore(session, registry)


@pytest.fixture
def carts(session):
    return CartAggregator(SqlCartStore(session))


@pytest.fixture
def orders(session):
    return OrderService(session)


@pytest.fixture
def settlement(session, registry, catalog, balances, carts, orders):
    return SettlementCoordinator(session, registry, catalog, balances, carts, orders)


@pytest.fixture
def retirements(session, registry, balances):
    return RetirementIssuer(session, registry, balances)


@pytest.fixture
def fill_cart(carts, catalog):
    """Add (class_id, quantity) lines to the test session's cart."""

    def _fill(*lines, session_key: str = SESSION_KEY):
        cart = None
        for class_id, quantity in lines:
            cart = carts.add_or_update(session_key, class_id, quantity, catalog.get_class(class_id))
        return cart

    return _fill


@pytest.fixture
def app(registry, session_factory):
    from main import create_app

    app = create_app(registry=registry)

    def _get_test_session():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_session] = _get_test_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_client(client):
    """TestClient logged in as the demo buyer (session cookie set)."""
    response = client.post("/api/auth/login", json={"email": DEMO_EMAIL, "password": DEMO_PASSWORD})
    assert response.status_code == 200
    return client
