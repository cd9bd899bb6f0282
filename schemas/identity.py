# schemas/identity.py
"""
Resolved buyer identity and the registry auth payloads.

``Identity`` is resolved once per request and passed explicitly into the
settlement and retirement services.
"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Role(str, Enum):
     BUYER = "BUYER"
     SELLER = "SELLER"
     ADMIN = "ADMIN"


class Identity(BaseModel):
     """Strict identity value object: {id, orgId, email, role}."""
     model_config = ConfigDict(
          frozen=True,
          alias_generator=to_camel,
          populate_by_name=True,
          extra="ignore",
     )

     id: str = Field(..., min_length=1)
     org_id: str = Field(..., min_length=1)
     email: str
     role: Role = Role.BUYER


class AuthResponse(BaseModel):
     """Registry response to POST /auth/login."""
     model_config = ConfigDict(extra="ignore")

     token: str
     user: Identity


class LoginRequest(BaseModel):
     email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
     password: str = Field(..., min_length=1)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "email": "buyer@buyerco.local",
                    "password": "Buyer@123",
               }
          }
     )
