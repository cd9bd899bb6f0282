# models/certificate.py
"""
CertificateRecord model - append-only log of issued retirement certificates.

Each record stores a SHA-256 hash over its own fields and a reference to the
previous record's hash, forming a chain (genesis previous_hash is "0").
Records are never updated or deleted; see models/immutability.py.
"""
from sqlalchemy import Column, Integer, String, DateTime
from .base import Base, utcnow


class CertificateRecord(Base):
     __tablename__ = "certificates"

     id = Column(Integer, primary_key=True, autoincrement=True)
     certificate_id = Column(String(128), nullable=False, unique=True, index=True)
     org_id = Column(String(64), nullable=False, index=True)
     class_id = Column(String(64), nullable=False, index=True)
     quantity = Column(Integer, nullable=False)
     purpose_hash = Column(String(66), nullable=False, index=True)  # "0x" + SHA-256 hex
     beneficiary_hash = Column(String(66), nullable=False, index=True)
     memo = Column(String(500), nullable=True)
     created_at = Column(DateTime, default=utcnow, nullable=False)
     record_hash = Column(String(64), nullable=False, unique=True)
     previous_hash = Column(String(64), nullable=False, index=True)  # "0" for genesis

     def __repr__(self):
          return f"<CertificateRecord(certificate_id={self.certificate_id}, hash={self.record_hash[:16]}...)>"
