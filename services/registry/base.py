# services/registry/base.py
"""
RegistryPort - the capability this core consumes from the external registry.

Two variants exist: HttpRegistry (network) and InMemoryRegistry
(deterministic fixture). One is chosen at process wiring time; business
logic only ever sees this interface.

Every method either returns a typed payload or raises a MarketError
subclass (NotFoundError, RegistryUnavailableError, RegistryRejectedError,
UnauthenticatedError).
"""
from abc import ABC, abstractmethod
from typing import Optional

from schemas.identity import AuthResponse, Identity
from schemas.registry import (
     Balance,
     CreditClass,
     Project,
     ProjectStatus,
     RetireRequest,
     RetireResult,
     Retirement,
     TransferReceipt,
     TransferRequest,
)


class RegistryPort(ABC):

     # Auth

     @abstractmethod
     def login(self, email: str, password: str) -> AuthResponse:
          ...

     @abstractmethod
     def logout(self, token: str) -> None:
          ...

     @abstractmethod
     def resolve_token(self, token: str) -> Optional[Identity]:
          """Return the identity behind a session token, or None if invalid."""

     # Projects and classes

     @abstractmethod
     def list_projects(self, status: Optional[ProjectStatus] = None) -> list[Project]:
          ...

     @abstractmethod
     def get_project(self, project_id: str) -> Project:
          ...

     @abstractmethod
     def list_classes(self, available: Optional[bool] = None) -> list[CreditClass]:
          ...

     @abstractmethod
     def get_class(self, class_id: str) -> CreditClass:
          ...

     # Credits

     @abstractmethod
     def get_balances(self, owner_org_id: str) -> list[Balance]:
          ...

     @abstractmethod
     def transfer(self, request: TransferRequest) -> TransferReceipt:
          """
          Move ``quantity`` credits of a class to ``to_org_id``.

          ``request.idempotency_key`` should make a repeated request return
          the earlier receipt; callers must not rely on it.
          """

     @abstractmethod
     def find_transfer(self, idempotency_key: str) -> Optional[TransferReceipt]:
          """Receipt previously issued for an idempotency key, or None."""

     @abstractmethod
     def retire(self, owner_org_id: str, request: RetireRequest) -> RetireResult:
          ...

     @abstractmethod
     def get_retirement(self, certificate_id: str) -> Retirement:
          ...

     def ping(self) -> bool:
          """Cheap reachability probe (the project listing)."""
          self.list_projects()
          return True
