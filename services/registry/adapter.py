# services/registry/adapter.py
"""
AdapterClient - read-only client for the settlement adapter.

The adapter relays registry transfers to the chain and exposes receipts and
transaction status. This core only reads from it (receipt and transaction lookup
and health reporting); settlement finality stays with the adapter.
"""
from typing import Any, Optional

import requests

from exceptions import NotFoundError, RegistryRejectedError, RegistryUnavailableError
from logging_config import get_logger

logger = get_logger("registry.adapter")


class AdapterClient:

     def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
          self.base_url = base_url.rstrip("/")
          self.timeout = timeout
          self.session = session or requests.Session()

     def _get(self, endpoint: str, not_found: tuple) -> Any:
          try:
               response = self.session.get(
                    f"{self.base_url}{endpoint}",
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout,
               )
          except requests.RequestException as e:
               raise RegistryUnavailableError(endpoint, str(e)) from e
          if response.status_code == 404:
               raise NotFoundError(*not_found)
          if response.status_code >= 500:
               raise RegistryUnavailableError(endpoint, f"HTTP {response.status_code}")
          if response.status_code >= 400:
               raise RegistryRejectedError(endpoint, response.status_code, response.text[:500])
          try:
               return response.json()
          except ValueError as e:
               raise RegistryUnavailableError(endpoint, f"malformed JSON: {e}") from e

     def get_receipt(self, adapter_tx_id: str) -> dict:
          return self._get(f"/v1/receipts/{adapter_tx_id}", ("receipt", adapter_tx_id))

     def get_transaction(self, tx_hash: str) -> dict:
          return self._get(f"/v1/tx/{tx_hash}", ("transaction", tx_hash))

     def ping(self) -> bool:
          """Reachable if the adapter answers at all below 500 (an unknown receipt is a 404)."""
          try:
               self.get_receipt("health-probe")
          except (NotFoundError, RegistryRejectedError):
               pass
          return True
