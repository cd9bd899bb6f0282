# services/certificate_ledger.py
"""
Certificate Ledger - content hashing and the append-only certificate log.

Content hashes:
     purpose / beneficiary free text -> "0x" + SHA-256 hex of the exact
     UTF-8 bytes. Any change to the text, whitespace included, changes the hash.

Certificate log (blockchain-like):
1. Compute SHA-256 over certificate_id|org_id|class_id|quantity|purpose_hash|beneficiary_hash|timestamp
2. Store the record with the previous record's hash (chain)
3. Records are append-only; no update/delete

Verification: recompute the hash and compare; optionally verify the chain.
"""
import hashlib
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session

from models import CertificateRecord
from models.base import utcnow


# Genesis block: no previous record
GENESIS_HASH = "0"

CONTENT_HASH_PREFIX = "0x"


def compute_content_hash(text: Optional[str]) -> str:
     """
     Content hash of free text (purpose, beneficiary), taken as given.

     Returns "0x" followed by a 64-char SHA-256 hex digest.
     """
     return CONTENT_HASH_PREFIX + hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def _normalize_timestamp(ts: datetime) -> str:
     """Normalize timestamp to ISO format (second precision) for deterministic hashing."""
     return ts.replace(microsecond=0, tzinfo=None).isoformat()


def compute_record_hash(
     certificate_id: str,
     org_id: str,
     class_id: str,
     quantity: int,
     purpose_hash: str,
     beneficiary_hash: str,
     timestamp: datetime,
) -> str:
     """
     Compute SHA-256 hash for a certificate record.

     Input string: certificate_id|org_id|class_id|quantity|purpose_hash|beneficiary_hash|timestamp.
     Returns 64-char hex string.
     """
     payload = "|".join([
          certificate_id,
          org_id,
          class_id,
          str(int(quantity)),
          purpose_hash,
          beneficiary_hash,
          _normalize_timestamp(timestamp),
     ])
     return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _record_hash_of(entry: CertificateRecord) -> str:
     return compute_record_hash(
          entry.certificate_id,
          entry.org_id,
          entry.class_id,
          entry.quantity,
          entry.purpose_hash,
          entry.beneficiary_hash,
          entry.created_at,
     )


def get_previous_hash(db: Session) -> str:
     """Get the record_hash of the most recent certificate, or GENESIS_HASH if empty."""
     last = db.query(CertificateRecord).order_by(desc(CertificateRecord.id)).limit(1).first()
     if last is None:
          return GENESIS_HASH
     return last.record_hash


def append_certificate_record(
     db: Session,
     certificate_id: str,
     org_id: str,
     class_id: str,
     quantity: int,
     purpose_hash: str,
     beneficiary_hash: str,
     memo: Optional[str] = None,
     timestamp: Optional[datetime] = None,
) -> CertificateRecord:
     """
     Append an immutable certificate record to the log (after the registry confirmed the retirement).

     Raises:
          ValueError: If certificate_id already has a record (double record).
     """
     if timestamp is None:
          timestamp = utcnow()
     timestamp = timestamp.replace(microsecond=0, tzinfo=None)

     existing = db.query(CertificateRecord).filter(CertificateRecord.certificate_id == certificate_id).first()
     if existing:
          raise ValueError(f"Certificate record already exists for certificate_id={certificate_id}")

     entry = CertificateRecord(
          certificate_id=certificate_id,
          org_id=org_id,
          class_id=class_id,
          quantity=quantity,
          purpose_hash=purpose_hash,
          beneficiary_hash=beneficiary_hash,
          memo=memo,
          created_at=timestamp,
          record_hash=compute_record_hash(
               certificate_id, org_id, class_id, quantity, purpose_hash, beneficiary_hash, timestamp
          ),
          previous_hash=get_previous_hash(db),
     )
     db.add(entry)
     db.flush()
     return entry


def verify_certificate_record(db: Session, certificate_id: str) -> Tuple[bool, str]:
     """
     Verify one certificate record by recomputing its hash and checking its chain link.

     Returns:
          (success: bool, message: str)
     """
     entry = db.query(CertificateRecord).filter(CertificateRecord.certificate_id == certificate_id).first()
     if entry is None:
          return False, "Certificate record not found"

     computed = _record_hash_of(entry)
     if computed != entry.record_hash:
          return False, f"Hash mismatch: stored={entry.record_hash[:16]}..., computed={computed[:16]}..."

     if entry.previous_hash != GENESIS_HASH:
          prev_entry = (
               db.query(CertificateRecord)
               .filter(CertificateRecord.id < entry.id)
               .order_by(desc(CertificateRecord.id))
               .limit(1)
               .first()
          )
          if prev_entry is None:
               return False, "Previous chain link not found"
          if prev_entry.record_hash != entry.previous_hash:
               return False, "Chain broken: previous_hash does not match previous record"

     return True, "Verification passed"


def verify_full_chain(db: Session) -> Tuple[bool, str, int]:
     """
     Verify the entire certificate chain from first to last record.

     Returns:
          (all_valid: bool, message: str, entries_checked: int)
     """
     entries = db.query(CertificateRecord).order_by(CertificateRecord.id).all()
     if not entries:
          return True, "Chain is empty (no entries)", 0

     prev_hash = GENESIS_HASH
     checked = 0

     for entry in entries:
          if entry.previous_hash != prev_hash:
               return False, f"Chain broken at id={entry.id}: previous_hash mismatch", checked
          if _record_hash_of(entry) != entry.record_hash:
               return False, f"Hash mismatch at certificate_id={entry.certificate_id}", checked
          prev_hash = entry.record_hash
          checked += 1

     return True, "Full chain verification passed", checked
