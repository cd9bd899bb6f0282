# services/retirement_service.py
"""
Retirement Issuer - retire held credits and issue a certificate.

Flow:
1. Validate quantity and attestation text (purpose, beneficiary, memo).
2. Balance precheck against the holdings cache; a short cache is confirmed
   with a registry read before the request is refused. A registry rejection
   of a request the cache allowed is confirmed the same way, so an
   over-balance retirement always ends in InsufficientBalanceError.
3. Hash purpose and beneficiary; only the exact-text hashes leave this service.
4. POST the retirement to the registry (no automatic retry).
5. Reconcile the holdings cache and append the certificate to the
   hash-chained local log.
"""
from typing import Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import BENEFICIARY_MAX_LENGTH, MEMO_MAX_LENGTH, PURPOSE_MAX_LENGTH
from exceptions import (
     InsufficientBalanceError,
     InvalidAttestationError,
     InvalidQuantityError,
     NotFoundError,
     RegistryRejectedError,
     RegistryUnavailableError,
     UnauthenticatedError,
)
from logging_config import get_logger
from models import CertificateRecord
from schemas.identity import Identity
from schemas.registry import RetireRequest
from schemas.retirement import CertificateListResponse, CertificateResponse, VerificationResponse
from services.balance_service import BalanceStore
from services.certificate_ledger import (
     append_certificate_record,
     compute_content_hash,
     verify_certificate_record,
     verify_full_chain,
)
from services.registry.base import RegistryPort

logger = get_logger("services.retirement")


def _org_of(identity_or_org: Union[Identity, str, None]) -> str:
     if isinstance(identity_or_org, Identity):
          return identity_or_org.org_id
     if not identity_or_org:
          raise UnauthenticatedError()
     return identity_or_org


def validate_attestation(purpose: Optional[str], beneficiary: Optional[str], memo: Optional[str]) -> None:
     """
     Raises:
          InvalidAttestationError: If purpose is blank or any field is too long
     """
     if not purpose or not purpose.strip():
          raise InvalidAttestationError("purpose", "purpose is required")
     if len(purpose.strip()) > PURPOSE_MAX_LENGTH:
          raise InvalidAttestationError("purpose", f"at most {PURPOSE_MAX_LENGTH} characters")
     if beneficiary and len(beneficiary.strip()) > BENEFICIARY_MAX_LENGTH:
          raise InvalidAttestationError("beneficiary", f"at most {BENEFICIARY_MAX_LENGTH} characters")
     if memo and len(memo) > MEMO_MAX_LENGTH:
          raise InvalidAttestationError("memo", f"at most {MEMO_MAX_LENGTH} characters")


class RetirementIssuer:

     def __init__(self, db: Session, registry: RegistryPort, balances: BalanceStore):
          self.db = db
          self.registry = registry
          self.balances = balances

     def retire(
          self,
          identity_or_org: Union[Identity, str, None],
          class_id: str,
          quantity: int,
          purpose: str,
          beneficiary: Optional[str] = "",
          memo: Optional[str] = None,
     ) -> CertificateResponse:
          """
          Retire ``quantity`` credits of ``class_id`` held by the caller's org.

          Raises:
               UnauthenticatedError: If no identity / org is given
               InvalidQuantityError: If quantity < 1
               InvalidAttestationError: If purpose/beneficiary/memo are out of bounds
               InsufficientBalanceError: If the org holds fewer credits
               RegistryError: Any registry failure, unchanged
          """
          org_id = _org_of(identity_or_org)
          if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
               raise InvalidQuantityError(quantity)
          validate_attestation(purpose, beneficiary, memo)

          held = self.balances.cached_holding(org_id, class_id)
          if quantity > held:
               held = self.balances.refresh_holding(org_id, class_id)
               if quantity > held:
                    raise InsufficientBalanceError(org_id, class_id, quantity, held)

          purpose_hash = compute_content_hash(purpose)
          beneficiary_hash = compute_content_hash(beneficiary)
          request = RetireRequest(
               class_id=class_id,
               quantity=quantity,
               purpose_hash=purpose_hash,
               beneficiary_hash=beneficiary_hash,
               memo=memo,
          )
          try:
               result = self.registry.retire(org_id, request)
          except RegistryRejectedError:
               # The cache may have shown more than the registry holds.
               held = self.balances.refresh_holding(org_id, class_id)
               if quantity > held:
                    self.db.commit()
                    raise InsufficientBalanceError(org_id, class_id, quantity, held)
               raise
          if not result.certificate_id:
               raise RegistryUnavailableError("/credits/retire", "response carried no certificate id")

          if quantity > self.balances.cached_holding(org_id, class_id):
               self.balances.refresh_holding(org_id, class_id)
          else:
               self.balances.apply_retirement(org_id, class_id, quantity)

          record = append_certificate_record(
               self.db,
               certificate_id=result.certificate_id,
               org_id=org_id,
               class_id=class_id,
               quantity=quantity,
               purpose_hash=purpose_hash,
               beneficiary_hash=beneficiary_hash,
               memo=memo,
          )
          self.db.commit()

          logger.info(
               "certificate_issued",
               extra={
                    "certificate_id": record.certificate_id,
                    "org_id": org_id,
                    "class_id": class_id,
                    "quantity": quantity,
               },
          )
          return CertificateResponse.model_validate(record)

     def get_certificate(self, certificate_id: str, org_id: Optional[str] = None) -> CertificateResponse:
          """Local certificate record, falling back to the registry's retirement record."""
          record = (
               self.db.query(CertificateRecord)
               .filter(CertificateRecord.certificate_id == certificate_id)
               .first()
          )
          if record is not None:
               if org_id is not None and record.org_id != org_id:
                    raise NotFoundError("certificate", certificate_id)
               return CertificateResponse.model_validate(record)

          retirement = self.registry.get_retirement(certificate_id)
          if org_id is not None and retirement.owner_org_id and retirement.owner_org_id != org_id:
               raise NotFoundError("certificate", certificate_id)
          return CertificateResponse(
               certificate_id=retirement.certificate_id,
               class_id=retirement.class_id,
               quantity=retirement.quantity,
               purpose_hash=retirement.purpose_hash,
               beneficiary_hash=retirement.beneficiary_hash,
               memo=retirement.memo,
               created_at=retirement.created_at,
               org_id=retirement.owner_org_id,
          )

     def list_certificates(self, org_id: str) -> CertificateListResponse:
          records = (
               self.db.query(CertificateRecord)
               .filter(CertificateRecord.org_id == org_id)
               .order_by(CertificateRecord.id.desc())
               .all()
          )
          total_retired = (
               self.db.query(func.coalesce(func.sum(CertificateRecord.quantity), 0))
               .filter(CertificateRecord.org_id == org_id)
               .scalar()
          )
          return CertificateListResponse(
               certificates=[CertificateResponse.model_validate(r) for r in records],
               total=len(records),
               total_retired=int(total_retired or 0),
          )

     def verify_certificate(self, certificate_id: str) -> VerificationResponse:
          valid, message = verify_certificate_record(self.db, certificate_id)
          return VerificationResponse(valid=valid, message=message)

     def verify_chain(self) -> VerificationResponse:
          valid, message, checked = verify_full_chain(self.db)
          return VerificationResponse(valid=valid, message=message, entries_checked=checked)
