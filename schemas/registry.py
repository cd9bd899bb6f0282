# schemas/registry.py
"""
Pydantic models for the registry boundary.

The registry speaks camelCase JSON; these models expose snake_case
attributes and accept either form on input. Serialize with
``model_dump(by_alias=True)`` when sending to the registry.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RegistryModel(BaseModel):
     model_config = ConfigDict(
          alias_generator=to_camel,
          populate_by_name=True,
          extra="ignore",
     )


class ProjectStatus(str, Enum):
     ACTIVE = "ACTIVE"
     INACTIVE = "INACTIVE"
     PENDING = "PENDING"


class ClassStatus(str, Enum):
     """PENDING -> FINALIZED (purchasable) or PENDING -> CANCELLED."""
     PENDING = "PENDING"
     FINALIZED = "FINALIZED"
     CANCELLED = "CANCELLED"


class Project(RegistryModel):
     """A verified mitigation activity. Totals are registry-maintained."""
     id: str
     name: str
     status: ProjectStatus
     total_issued: int = Field(..., ge=0)
     total_retired: int = Field(..., ge=0)
     description: Optional[str] = None
     region: Optional[str] = None
     country: Optional[str] = None
     methodology: Optional[str] = None
     created_at: Optional[datetime] = None


class CreditClass(RegistryModel):
     """A fungible batch of credits for one project + vintage."""
     id: str
     project_id: str
     vintage: str
     issued: int = Field(..., ge=0)
     retired: int = Field(..., ge=0)
     remaining: int = Field(..., ge=0)
     status: ClassStatus
     factor_ref: Optional[str] = None
     created_at: Optional[datetime] = None

     @property
     def is_purchasable(self) -> bool:
          return self.status == ClassStatus.FINALIZED and self.remaining > 0


class Balance(RegistryModel):
     """(owner org, class) -> quantity held."""
     owner_org_id: Optional[str] = None
     class_id: str
     quantity: int = Field(..., ge=0)
     credit_class: Optional[CreditClass] = Field(None, alias="class")


class TransferRequest(RegistryModel):
     to_org_id: str
     class_id: str
     quantity: int = Field(..., gt=0)
     idempotency_key: Optional[str] = None


class TransferReceipt(RegistryModel):
     """Registry proof of one transfer. ``receipt_id`` may be absent in a malformed response."""
     receipt_id: Optional[str] = None
     class_id: Optional[str] = None
     quantity: Optional[int] = None
     to_org_id: Optional[str] = None
     idempotency_key: Optional[str] = None
     created_at: Optional[datetime] = None


class RetireRequest(RegistryModel):
     """Only content hashes of purpose/beneficiary ever cross the boundary."""
     class_id: str
     quantity: int = Field(..., gt=0)
     purpose_hash: str
     beneficiary_hash: str
     memo: Optional[str] = None


class RetireResult(RegistryModel):
     certificate_id: Optional[str] = None


class Retirement(RegistryModel):
     id: str
     certificate_id: str
     class_id: str
     quantity: int
     purpose_hash: str
     beneficiary_hash: str
     memo: Optional[str] = None
     owner_org_id: Optional[str] = None
     created_at: Optional[datetime] = None
