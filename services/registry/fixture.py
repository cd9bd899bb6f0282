# services/registry/fixture.py
"""
InMemoryRegistry - deterministic RegistryPort for demos and tests.

Keeps its own small ledger and enforces, for every class,
issued == retired + remaining + sum(holder balances). Ids are sequential
(rcpt_000001, cert_000001) so runs are reproducible. All state is guarded
by a single lock; FastAPI serves sync routes from a threadpool.
"""
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from jose import JWTError, jwt
from passlib.context import CryptContext

from config import JWT_ALGORITHM, JWT_SECRET
from exceptions import NotFoundError, RegistryRejectedError, UnauthenticatedError
from logging_config import get_logger
from schemas.identity import AuthResponse, Identity, Role
from schemas.registry import (
     Balance,
     ClassStatus,
     CreditClass,
     Project,
     ProjectStatus,
     RetireRequest,
     RetireResult,
     Retirement,
     TransferReceipt,
     TransferRequest,
)
from .base import RegistryPort

logger = get_logger("registry.fixture")

# pbkdf2_sha256 is pure Python in passlib; no native bcrypt backend required
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

TOKEN_TTL = timedelta(days=7)

SEED_PROJECTS = [
     {"id": "P1", "name": "Amazon Rainforest Conservation", "status": "ACTIVE",
      "region": "South America", "country": "Brazil", "methodology": "VM0015"},
     {"id": "P2", "name": "Kenya Clean Cookstoves", "status": "ACTIVE",
      "region": "Africa", "country": "Kenya", "methodology": "GS-TPDDTEC"},
     {"id": "P3", "name": "Gujarat Wind Farm", "status": "PENDING",
      "region": "Asia", "country": "India", "methodology": "ACM0002"},
]

SEED_CLASSES = [
     {"id": "C1", "projectId": "P1", "vintage": "2022", "issued": 1000, "retired": 150, "remaining": 850, "status": "FINALIZED"},
     {"id": "C2", "projectId": "P1", "vintage": "2023", "issued": 500, "retired": 0, "remaining": 500, "status": "FINALIZED"},
     {"id": "C3", "projectId": "P2", "vintage": "2023", "issued": 300, "retired": 20, "remaining": 280, "status": "FINALIZED"},
     {"id": "C4", "projectId": "P2", "vintage": "2024", "issued": 200, "retired": 0, "remaining": 200, "status": "PENDING"},
     {"id": "C5", "projectId": "P3", "vintage": "2021", "issued": 100, "retired": 100, "remaining": 0, "status": "FINALIZED"},
]

SEED_USERS = [
     {"id": "user_001", "email": "buyer@buyerco.local", "password": "Buyer@123", "role": "BUYER", "orgId": "org_001"},
     {"id": "user_002", "email": "buyer2@greenco.local", "password": "Buyer@456", "role": "BUYER", "orgId": "org_002"},
]


def _utcnow() -> datetime:
     return datetime.now(timezone.utc)


class InMemoryRegistry(RegistryPort):

     def __init__(
          self,
          projects: Optional[List[dict]] = None,
          classes: Optional[List[dict]] = None,
          users: Optional[List[dict]] = None,
          clock: Callable[[], datetime] = _utcnow,
          jwt_secret: str = JWT_SECRET,
     ):
          self._lock = threading.Lock()
          self._clock = clock
          self._jwt_secret = jwt_secret
          created = clock()

          self._classes: Dict[str, CreditClass] = {}
          for raw in classes if classes is not None else SEED_CLASSES:
               cls = CreditClass.model_validate({"createdAt": created, **raw})
               if cls.retired + cls.remaining != cls.issued:
                    raise ValueError(f"Seed class {cls.id} does not balance")
               self._classes[cls.id] = cls

          self._projects: Dict[str, Project] = {}
          for raw in projects if projects is not None else SEED_PROJECTS:
               self._projects[raw["id"]] = Project.model_validate(
                    {"createdAt": created, "totalIssued": 0, "totalRetired": 0, **raw}
               )
          for project_id in self._projects:
               self._recompute_project_totals(project_id)

          self._users: Dict[str, dict] = {}
          for raw in users if users is not None else SEED_USERS:
               user = dict(raw)
               user["password_hash"] = pwd_context.hash(user.pop("password"))
               self._users[user["email"].lower()] = user
          self._revoked_tokens: set = set()

          self._balances: Dict[Tuple[str, str], int] = {}
          self._transfers_by_key: Dict[str, TransferReceipt] = {}
          self._retirements: Dict[str, Retirement] = {}
          self._receipt_seq = 0
          self._certificate_seq = 0

     # ------------------------------------------------------------------
     # Helpers
     # ------------------------------------------------------------------

     def _recompute_project_totals(self, project_id: str) -> None:
          project = self._projects.get(project_id)
          if project is None:
               return
          classes = [c for c in self._classes.values() if c.project_id == project_id]
          self._projects[project_id] = project.model_copy(update={
               "total_issued": sum(c.issued for c in classes),
               "total_retired": sum(c.retired for c in classes),
          })

     def _require_class(self, class_id: str) -> CreditClass:
          cls = self._classes.get(class_id)
          if cls is None:
               raise NotFoundError("class", class_id)
          return cls

     def holders(self, class_id: str) -> Dict[str, int]:
          """Outstanding holder balances for a class (org -> quantity)."""
          with self._lock:
               return {org: qty for (org, cid), qty in self._balances.items() if cid == class_id and qty > 0}

     def set_class_status(self, class_id: str, status: ClassStatus) -> CreditClass:
          """Registry-side lifecycle transition (PENDING -> FINALIZED/CANCELLED)."""
          with self._lock:
               cls = self._require_class(class_id)
               if cls.status != ClassStatus.PENDING:
                    raise RegistryRejectedError(f"/classes/{class_id}", 409, f"class is {cls.status.value}")
               self._classes[class_id] = cls.model_copy(update={"status": status})
               return self._classes[class_id].model_copy()

     def consume_supply(self, class_id: str, quantity: int, to_org_id: str = "org_external") -> None:
          """Sell supply to another buyer, outside this core (depletes ``remaining``)."""
          self.transfer(TransferRequest(to_org_id=to_org_id, class_id=class_id, quantity=quantity))

     # ------------------------------------------------------------------
     # Auth
     # ------------------------------------------------------------------

     def login(self, email: str, password: str) -> AuthResponse:
          user = self._users.get(email.lower())
          if user is None or not pwd_context.verify(password, user["password_hash"]):
               raise UnauthenticatedError("Invalid credentials")
          identity = Identity(id=user["id"], org_id=user["orgId"], email=user["email"], role=Role(user["role"]))
          claims = {
               "sub": identity.id,
               "email": identity.email,
               "role": identity.role.value,
               "orgId": identity.org_id,
               "exp": self._clock() + TOKEN_TTL,
          }
          token = jwt.encode(claims, self._jwt_secret, algorithm=JWT_ALGORITHM)
          return AuthResponse(token=token, user=identity)

     def logout(self, token: str) -> None:
          with self._lock:
               self._revoked_tokens.add(token)

     def resolve_token(self, token: str) -> Optional[Identity]:
          if not token or token in self._revoked_tokens:
               return None
          try:
               claims = jwt.decode(token, self._jwt_secret, algorithms=[JWT_ALGORITHM])
          except JWTError:
               return None
          return Identity(
               id=claims["sub"],
               org_id=claims["orgId"],
               email=claims.get("email", ""),
               role=Role(claims.get("role", "BUYER")),
          )

     # ------------------------------------------------------------------
     # Projects and classes
     # ------------------------------------------------------------------

     def list_projects(self, status: Optional[ProjectStatus] = None) -> list[Project]:
          with self._lock:
               projects = [p.model_copy() for p in self._projects.values()]
          if status is not None:
               projects = [p for p in projects if p.status == ProjectStatus(status)]
          return projects

     def get_project(self, project_id: str) -> Project:
          with self._lock:
               project = self._projects.get(project_id)
               if project is None:
                    raise NotFoundError("project", project_id)
               return project.model_copy()

     def list_classes(self, available: Optional[bool] = None) -> list[CreditClass]:
          with self._lock:
               classes = [c.model_copy() for c in self._classes.values()]
          if available:
               classes = [c for c in classes if c.remaining > 0]
          return classes

     def get_class(self, class_id: str) -> CreditClass:
          with self._lock:
               return self._require_class(class_id).model_copy()

     # ------------------------------------------------------------------
     # Credits
     # ------------------------------------------------------------------

     def get_balances(self, owner_org_id: str) -> list[Balance]:
          with self._lock:
               return [
                    Balance(
                         owner_org_id=org,
                         class_id=class_id,
                         quantity=qty,
                         credit_class=self._classes[class_id].model_copy(),
                    )
                    for (org, class_id), qty in sorted(self._balances.items())
                    if org == owner_org_id and qty > 0
               ]

     def transfer(self, request: TransferRequest) -> TransferReceipt:
          endpoint = "/credits/transfer"
          with self._lock:
               key = request.idempotency_key
               if key and key in self._transfers_by_key:
                    return self._transfers_by_key[key].model_copy()

               cls = self._require_class(request.class_id)
               if cls.status != ClassStatus.FINALIZED:
                    raise RegistryRejectedError(endpoint, 409, f"class {cls.id} is {cls.status.value}")
               if request.quantity > cls.remaining:
                    raise RegistryRejectedError(
                         endpoint, 409,
                         f"insufficient supply: requested {request.quantity}, remaining {cls.remaining}",
                    )

               self._classes[cls.id] = cls.model_copy(update={"remaining": cls.remaining - request.quantity})
               balance_key = (request.to_org_id, cls.id)
               self._balances[balance_key] = self._balances.get(balance_key, 0) + request.quantity

               self._receipt_seq += 1
               receipt = TransferReceipt(
                    receipt_id=f"rcpt_{self._receipt_seq:06d}",
                    class_id=cls.id,
                    quantity=request.quantity,
                    to_org_id=request.to_org_id,
                    idempotency_key=key,
                    created_at=self._clock(),
               )
               if key:
                    self._transfers_by_key[key] = receipt
          logger.debug("fixture_transfer", extra={"receipt_id": receipt.receipt_id, "class_id": cls.id})
          return receipt.model_copy()

     def find_transfer(self, idempotency_key: str) -> Optional[TransferReceipt]:
          with self._lock:
               receipt = self._transfers_by_key.get(idempotency_key)
               return receipt.model_copy() if receipt else None

     def retire(self, owner_org_id: str, request: RetireRequest) -> RetireResult:
          endpoint = "/credits/retire"
          with self._lock:
               cls = self._require_class(request.class_id)
               balance_key = (owner_org_id, cls.id)
               held = self._balances.get(balance_key, 0)
               if request.quantity > held:
                    raise RegistryRejectedError(
                         endpoint, 409,
                         f"insufficient balance: requested {request.quantity}, held {held}",
                    )

               self._balances[balance_key] = held - request.quantity
               self._classes[cls.id] = cls.model_copy(update={"retired": cls.retired + request.quantity})
               self._recompute_project_totals(cls.project_id)

               self._certificate_seq += 1
               certificate_id = f"cert_{self._certificate_seq:06d}"
               self._retirements[certificate_id] = Retirement(
                    id=f"ret_{self._certificate_seq:06d}",
                    certificate_id=certificate_id,
                    class_id=cls.id,
                    quantity=request.quantity,
                    purpose_hash=request.purpose_hash,
                    beneficiary_hash=request.beneficiary_hash,
                    memo=request.memo,
                    owner_org_id=owner_org_id,
                    created_at=self._clock(),
               )
          return RetireResult(certificate_id=certificate_id)

     def get_retirement(self, certificate_id: str) -> Retirement:
          with self._lock:
               retirement = self._retirements.get(certificate_id)
               if retirement is None:
                    raise NotFoundError("certificate", certificate_id)
               return retirement.model_copy()
