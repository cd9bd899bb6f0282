# services/balance_service.py
"""
Balance Store - per-org holdings of credits by class.

The registry is the ledger of record. This store keeps a local cache
(credit_holdings) so views do not re-query the registry on every render:
- get_holdings / refresh_holding read through and overwrite the cache
- apply_transfer_in / apply_retirement reconcile the cache after the
  registry has confirmed a mutation

The cache is never the sole basis of a financial decision while the
registry is reachable.
"""
from typing import Optional

from sqlalchemy.orm import Session

from exceptions import InsufficientBalanceError, InvalidQuantityError
from logging_config import get_logger
from models import CreditHolding
from models.base import utcnow
from schemas.registry import Balance
from services.registry.base import RegistryPort

logger = get_logger("services.balance")


def _require_positive(quantity) -> int:
     if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
          raise InvalidQuantityError(quantity)
     return quantity


class BalanceStore:

     def __init__(self, db: Session, registry: RegistryPort):
          self.db = db
          self.registry = registry

     def _row(self, org_id: str, class_id: str) -> Optional[CreditHolding]:
          return (
               self.db.query(CreditHolding)
               .filter(CreditHolding.org_id == org_id, CreditHolding.class_id == class_id)
               .first()
          )

     def _set_cached(self, org_id: str, class_id: str, quantity: int) -> None:
          row = self._row(org_id, class_id)
          if row is None:
               self.db.add(CreditHolding(org_id=org_id, class_id=class_id, quantity=quantity))
          else:
               row.quantity = quantity
               row.refreshed_at = utcnow()
          self.db.flush()

     def get_holdings(self, owner_org_id: str) -> list[Balance]:
          """
          Read holdings from the registry and overwrite the local cache.

          Cached rows for classes the registry no longer reports are zeroed.
          """
          balances = self.registry.get_balances(owner_org_id)
          reported = {b.class_id: b.quantity for b in balances}

          for row in self.db.query(CreditHolding).filter(CreditHolding.org_id == owner_org_id).all():
               if row.class_id not in reported and row.quantity != 0:
                    row.quantity = 0
                    row.refreshed_at = utcnow()
          for class_id, quantity in reported.items():
               self._set_cached(owner_org_id, class_id, quantity)
          self.db.flush()

          return [b for b in balances if b.quantity > 0]

     def cached_holding(self, org_id: str, class_id: str) -> int:
          row = self._row(org_id, class_id)
          return row.quantity if row else 0

     def cached_holdings(self, org_id: str) -> dict[str, int]:
          rows = (
               self.db.query(CreditHolding)
               .filter(CreditHolding.org_id == org_id, CreditHolding.quantity > 0)
               .order_by(CreditHolding.class_id)
               .all()
          )
          return {row.class_id: row.quantity for row in rows}

     def refresh_holding(self, org_id: str, class_id: str) -> int:
          """Authoritative holding for one class (registry read), cached on the way out."""
          held = 0
          for balance in self.registry.get_balances(org_id):
               if balance.class_id == class_id:
                    held = balance.quantity
                    break
          self._set_cached(org_id, class_id, held)
          return held

     def apply_transfer_in(self, org_id: str, class_id: str, quantity: int) -> int:
          """Reconcile a registry-confirmed transfer into ``org_id``."""
          _require_positive(quantity)
          held = self.cached_holding(org_id, class_id) + quantity
          self._set_cached(org_id, class_id, held)
          logger.info(
               "holding_transfer_in",
               extra={"org_id": org_id, "class_id": class_id, "quantity": quantity, "held": held},
          )
          return held

     def apply_retirement(self, org_id: str, class_id: str, quantity: int) -> int:
          """
          Reconcile a registry-confirmed retirement out of ``org_id``.

          Raises:
               InsufficientBalanceError: If quantity exceeds the cached holding
          """
          _require_positive(quantity)
          held = self.cached_holding(org_id, class_id)
          if quantity > held:
               raise InsufficientBalanceError(org_id, class_id, quantity, held)
          self._set_cached(org_id, class_id, held - quantity)
          logger.info(
               "holding_retired",
               extra={"org_id": org_id, "class_id": class_id, "quantity": quantity, "held": held - quantity},
          )
          return held - quantity
