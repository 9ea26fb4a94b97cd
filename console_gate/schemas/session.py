from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class UserRole(str, Enum):
    OWNER = "owner"
    MANAGER = "manager"
    TECHNICIAN = "technician"

# Roles that see the growth funnel and load the full back-office collections
PRIVILEGED_ROLES = (UserRole.OWNER, UserRole.MANAGER)

class User(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    email: str = ""
    role: UserRole
    payment_required: bool = Field(False, alias="paymentRequired")
    tenant_id: Optional[str] = Field(None, alias="tenantId")

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
