from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

class GoogleBusinessStatus(str, Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"

class GoogleBusiness(BaseModel):
    # status may also carry values such as 'not_found' set by the verification flow
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    status: str = GoogleBusinessStatus.UNVERIFIED.value
    maps_uri: Optional[str] = Field(None, alias="mapsUri")
    success_shown: bool = Field(False, alias="successShown")
    dismissed_prompt: bool = Field(False, alias="dismissedPrompt")
    has_external_ecommerce: bool = Field(False, alias="hasExternalEcommerce")

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        return v or GoogleBusinessStatus.UNVERIFIED.value

    @field_validator("success_shown", "dismissed_prompt", "has_external_ecommerce", mode="before")
    @classmethod
    def only_true_is_true(cls, v):
        return v is True

class CompanyAddress(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    cep: str = ""

    @field_validator("cep", mode="before")
    @classmethod
    def none_is_blank(cls, v):
        return "" if v is None else str(v)

class CompanyInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = ""
    address: CompanyAddress = Field(default_factory=CompanyAddress)

    @field_validator("name", mode="before")
    @classmethod
    def none_is_blank(cls, v):
        return "" if v is None else str(v)

    @field_validator("address", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return {} if v is None else v

class TenantSettings(BaseModel):
    """
    Tenant settings as served by the console API.
    Only the fields the bootstrap waterfall reads are typed; the rest of the
    payload (goals, fees, thresholds...) is kept so it can be handed back to the view.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    is_setup_complete: bool = Field(False, alias="isSetupComplete")
    company_info: CompanyInfo = Field(default_factory=CompanyInfo, alias="companyInfo")
    google_business: GoogleBusiness = Field(default_factory=GoogleBusiness, alias="googleBusiness")

    @field_validator("is_setup_complete", mode="before")
    @classmethod
    def none_is_false(cls, v):
        return False if v is None else v

    @field_validator("company_info", "google_business", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return {} if v is None else v

    def has_critical_data(self) -> bool:
        """Company name and postal code are required before the console is usable."""
        return bool(self.company_info.name.strip()) and bool(self.company_info.address.cep.strip())
