# routers/retirements.py
"""
Retirement and certificate API.

POST /retirements retires held credits and returns the certificate. Only
the hashes of purpose and beneficiary are sent to the registry.
Retirements are irreversible and never retried here.
"""
from fastapi import APIRouter, Depends, status

from dependencies import get_retirements, require_identity
from schemas.identity import Identity
from schemas.retirement import (
     CertificateListResponse,
     CertificateResponse,
     RetirementCreate,
     VerificationResponse,
)
from services.retirement_service import RetirementIssuer

router = APIRouter(prefix="/api", tags=["retirements"])


@router.post(
     "/retirements",
     response_model=CertificateResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Retire credits"
)
def create_retirement(
     body: RetirementCreate,
     identity: Identity = Depends(require_identity),
     retirements: RetirementIssuer = Depends(get_retirements),
):
     """
     - **class_id**: Credit class to retire from
     - **quantity**: Credits to retire (must not exceed the org's holding)
     - **purpose**: Free-text purpose, at most 280 characters
     - **beneficiary**: Free-text beneficiary, at most 120 characters
     - **memo**: Optional note, stored as given
     """
     return retirements.retire(
          identity,
          body.class_id,
          body.quantity,
          body.purpose,
          body.beneficiary,
          body.memo,
     )


@router.get("/certificates", response_model=CertificateListResponse, summary="Org's certificates")
def list_certificates(
     identity: Identity = Depends(require_identity),
     retirements: RetirementIssuer = Depends(get_retirements),
):
     return retirements.list_certificates(identity.org_id)


@router.get("/certificates/verify-chain", response_model=VerificationResponse, summary="Verify the certificate log")
def verify_chain(
     identity: Identity = Depends(require_identity),
     retirements: RetirementIssuer = Depends(get_retirements),
):
     return retirements.verify_chain()


@router.get("/certificates/{certificate_id}", response_model=CertificateResponse, summary="Get a certificate")
def get_certificate(
     certificate_id: str,
     identity: Identity = Depends(require_identity),
     retirements: RetirementIssuer = Depends(get_retirements),
):
     return retirements.get_certificate(certificate_id, org_id=identity.org_id)


@router.get(
     "/certificates/{certificate_id}/verify",
     response_model=VerificationResponse,
     summary="Verify a certificate record"
)
def verify_certificate(
     certificate_id: str,
     identity: Identity = Depends(require_identity),
     retirements: RetirementIssuer = Depends(get_retirements),
):
     retirements.get_certificate(certificate_id, org_id=identity.org_id)
     return retirements.verify_certificate(certificate_id)
