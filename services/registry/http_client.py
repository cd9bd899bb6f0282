# services/registry/http_client.py
"""
HttpRegistry - RegistryPort over the registry's REST API.

Transport failures are mapped to typed errors:
- connect timeout / refused connection  -> RegistryUnavailableError
- read timeout / dropped connection on a mutating call
                                        -> RegistryUnavailableError(ambiguous=True)
- 5xx                                   -> RegistryUnavailableError
- 404                                   -> NotFoundError
- 401                                   -> UnauthenticatedError
- other 4xx                             -> RegistryRejectedError
"""
from typing import Any, Optional, Tuple

import requests
from pydantic import ValidationError as PydanticValidationError

from exceptions import (
     NotFoundError,
     RegistryRejectedError,
     RegistryUnavailableError,
     UnauthenticatedError,
)
from logging_config import get_logger
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
from .base import RegistryPort

logger = get_logger("registry.http")

_MUTATING = {"POST", "PUT", "PATCH", "DELETE"}


def _unwrap(payload: Any, key: str) -> Any:
     """Accept both bare payloads and {"<key>": ...} / {"data": ...} envelopes."""
     if isinstance(payload, dict):
          if key in payload:
               return payload[key]
          if "data" in payload:
               return payload["data"]
     return payload


class HttpRegistry(RegistryPort):

     def __init__(
          self,
          base_url: str,
          timeout: float = 10.0,
          api_token: Optional[str] = None,
          session: Optional[requests.Session] = None,
     ):
          self.base_url = base_url.rstrip("/")
          self.timeout = timeout
          self.api_token = api_token
          self.session = session or requests.Session()

     # ------------------------------------------------------------------
     # Transport
     # ------------------------------------------------------------------

     def _headers(self, token: Optional[str], extra: Optional[dict]) -> dict:
          headers = {"Content-Type": "application/json"}
          bearer = token or self.api_token
          if bearer:
               headers["Authorization"] = f"Bearer {bearer}"
          if extra:
               headers.update(extra)
          return headers

     def _request(
          self,
          method: str,
          endpoint: str,
          *,
          params: Optional[dict] = None,
          json: Optional[dict] = None,
          token: Optional[str] = None,
          headers: Optional[dict] = None,
          not_found: Optional[Tuple[str, str]] = None,
     ) -> Any:
          url = f"{self.base_url}{endpoint}"
          mutating = method in _MUTATING
          try:
               response = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._headers(token, headers),
                    timeout=self.timeout,
               )
          except requests.ConnectTimeout as e:
               raise RegistryUnavailableError(endpoint, f"connect timeout: {e}") from e
          except requests.Timeout as e:
               raise RegistryUnavailableError(endpoint, f"timeout: {e}", ambiguous=mutating) from e
          except requests.ConnectionError as e:
               raise RegistryUnavailableError(endpoint, f"connection error: {e}", ambiguous=mutating) from e
          except requests.RequestException as e:
               raise RegistryUnavailableError(endpoint, str(e), ambiguous=mutating) from e

          status = response.status_code
          if status == 404 and not_found is not None:
               raise NotFoundError(*not_found)
          if status == 401:
               raise UnauthenticatedError(f"Registry refused credentials for {endpoint}")
          if status >= 500:
               logger.warning(
                    "registry_server_error",
                    extra={"endpoint": endpoint, "status": status},
               )
               raise RegistryUnavailableError(endpoint, f"HTTP {status}", ambiguous=mutating)
          if status >= 400:
               raise RegistryRejectedError(endpoint, status, response.text[:500])

          if status == 204 or not response.content:
               return None
          try:
               return response.json()
          except ValueError as e:
               raise RegistryUnavailableError(endpoint, f"malformed JSON: {e}", ambiguous=mutating) from e

     def _parse(self, endpoint: str, model, payload: Any):
          try:
               return model.model_validate(payload)
          except PydanticValidationError as e:
               raise RegistryUnavailableError(endpoint, f"unexpected payload: {e.error_count()} errors") from e

     # ------------------------------------------------------------------
     # Auth
     # ------------------------------------------------------------------

     def login(self, email: str, password: str) -> AuthResponse:
          payload = self._request("POST", "/auth/login", json={"email": email, "password": password})
          return self._parse("/auth/login", AuthResponse, payload)

     def logout(self, token: str) -> None:
          self._request("POST", "/auth/logout", token=token)

     def resolve_token(self, token: str) -> Optional[Identity]:
          try:
               payload = self._request("GET", "/auth/me", token=token)
          except UnauthenticatedError:
               return None
          if not payload:
               return None
          return self._parse("/auth/me", Identity, _unwrap(payload, "user"))

     # ------------------------------------------------------------------
     # Projects and classes
     # ------------------------------------------------------------------

     def list_projects(self, status: Optional[ProjectStatus] = None) -> list[Project]:
          params = {"status": ProjectStatus(status).value} if status else None
          payload = self._request("GET", "/projects", params=params)
          return [self._parse("/projects", Project, item) for item in _unwrap(payload, "projects") or []]

     def get_project(self, project_id: str) -> Project:
          endpoint = f"/projects/{project_id}"
          payload = self._request("GET", endpoint, not_found=("project", project_id))
          return self._parse(endpoint, Project, _unwrap(payload, "project"))

     def list_classes(self, available: Optional[bool] = None) -> list[CreditClass]:
          params = {"available": "true" if available else "false"} if available is not None else None
          payload = self._request("GET", "/classes", params=params)
          return [self._parse("/classes", CreditClass, item) for item in _unwrap(payload, "classes") or []]

     def get_class(self, class_id: str) -> CreditClass:
          endpoint = f"/classes/{class_id}"
          payload = self._request("GET", endpoint, not_found=("class", class_id))
          return self._parse(endpoint, CreditClass, _unwrap(payload, "class"))

     # ------------------------------------------------------------------
     # Credits
     # ------------------------------------------------------------------

     def get_balances(self, owner_org_id: str) -> list[Balance]:
          payload = self._request("GET", "/credits/balance", params={"ownerId": owner_org_id})
          balances = []
          for item in _unwrap(payload, "balances") or []:
               balance = self._parse("/credits/balance", Balance, item)
               balances.append(balance.model_copy(update={"owner_org_id": owner_org_id}))
          return balances

     def transfer(self, request: TransferRequest) -> TransferReceipt:
          headers = {"Idempotency-Key": request.idempotency_key} if request.idempotency_key else None
          payload = self._request(
               "POST",
               "/credits/transfer",
               json=request.model_dump(by_alias=True, exclude_none=True),
               headers=headers,
          )
          return self._parse("/credits/transfer", TransferReceipt, payload or {})

     def find_transfer(self, idempotency_key: str) -> Optional[TransferReceipt]:
          endpoint = f"/credits/transfers/{idempotency_key}"
          try:
               payload = self._request("GET", endpoint, not_found=("transfer", idempotency_key))
          except NotFoundError:
               return None
          return self._parse(endpoint, TransferReceipt, payload)

     def retire(self, owner_org_id: str, request: RetireRequest) -> RetireResult:
          body = request.model_dump(by_alias=True, exclude_none=True)
          body["ownerOrgId"] = owner_org_id
          payload = self._request("POST", "/credits/retire", json=body)
          return self._parse("/credits/retire", RetireResult, payload or {})

     def get_retirement(self, certificate_id: str) -> Retirement:
          endpoint = f"/retirements/{certificate_id}"
          payload = self._request("GET", endpoint, not_found=("certificate", certificate_id))
          return self._parse(endpoint, Retirement, _unwrap(payload, "retirement"))
