# services/__init__.py
from .catalog_service import CatalogService
from .balance_service import BalanceStore
from .cart_service import CartAggregator, CartStore, InMemoryCartStore, SqlCartStore, cart_totals
from .order_service import LineResult, OrderService
from .settlement_service import SettlementCoordinator, SettlementResult, idempotency_key
from .retirement_service import RetirementIssuer
from .certificate_ledger import (
     compute_content_hash,
     compute_record_hash,
     get_previous_hash,
     append_certificate_record,
     verify_certificate_record,
     verify_full_chain,
     GENESIS_HASH,
)

__all__ = [
     "CatalogService",
     "BalanceStore",
     "CartAggregator",
     "CartStore",
     "InMemoryCartStore",
     "SqlCartStore",
     "cart_totals",
     "LineResult",
     "OrderService",
     "SettlementCoordinator",
     "SettlementResult",
     "idempotency_key",
     "RetirementIssuer",
     "compute_content_hash",
     "compute_record_hash",
     "get_previous_hash",
     "append_certificate_record",
     "verify_certificate_record",
     "verify_full_chain",
     "GENESIS_HASH",
]
