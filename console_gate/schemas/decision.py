from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from console_gate.core.errors import InvalidTimestamp
from console_gate.core.timewindow import parse_timestamp
from console_gate.schemas.billing import BillingSnapshot
from console_gate.schemas.session import User
from console_gate.schemas.settings import TenantSettings

class DeterminedAction(str, Enum):
    BLOCK = "block"
    SETUP_ST = "setup_st"
    WELCOME = "welcome"
    FORCE_CONTRACT = "force_contract"
    GOOGLE_SUCCESS = "google_success"
    EXPIRATION_ALERT = "expiration_alert"
    GROWTH = "growth"
    NONE = "none"

class GrowthVariant(str, Enum):
    VERIFY = "verify"
    MAPS_OFFER = "maps_offer"
    ECOMMERCE_OFFER = "ecommerce_offer"
    SINGLE_TENANT_OFFER = "single_tenant_offer"

class ExpirationVariant(str, Enum):
    TRIAL = "trial"
    MONTHLY = "monthly"

class SettingsRead(str, Enum):
    """The points in the waterfall that consume a (re-)read of tenant settings, in order."""
    ONBOARDING = "onboarding"
    GOOGLE_SUCCESS = "google_success"
    GROWTH = "growth"

SETTINGS_READ_ORDER = (SettingsRead.ONBOARDING, SettingsRead.GOOGLE_SUCCESS, SettingsRead.GROWTH)

class ExpirationInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    variant: ExpirationVariant
    days_left: int = Field(..., alias="daysLeft")

class Decision(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: DeterminedAction
    variant: Optional[GrowthVariant] = None
    expiration: Optional[ExpirationInfo] = None
    maps_uri: Optional[str] = Field(None, alias="mapsUri")

class SessionFlags(BaseModel):
    """Ephemeral dismissals for the current browser session."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    exp_alert_seen: bool = Field(False, alias="expAlertSeen")
    growth_alert_seen: bool = Field(False, alias="growthAlertSeen")
    google_success_seen: bool = Field(False, alias="googleSuccessSeen")

class StageSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    onboarding: Optional[TenantSettings] = None
    google_success: Optional[TenantSettings] = None
    growth: Optional[TenantSettings] = None

    def get(self, read: SettingsRead) -> Optional[TenantSettings]:
        return getattr(self, read.value)

    def for_stage(self, read: SettingsRead) -> Optional[TenantSettings]:
        """Freshest copy available at this stage: its own read, else the latest earlier one."""
        position = SETTINGS_READ_ORDER.index(read)
        for earlier in reversed(SETTINGS_READ_ORDER[: position + 1]):
            value = self.get(earlier)
            if value is not None:
                return value
        return None

    def latest(self) -> Optional[TenantSettings]:
        return self.for_stage(SETTINGS_READ_ORDER[-1])

    def with_read(self, read: SettingsRead, value: TenantSettings) -> "StageSettings":
        return self.model_copy(update={read.value: value})

class BootstrapSnapshot(BaseModel):
    """Everything one bootstrap pass decides on. Built fresh per page load."""
    model_config = ConfigDict(frozen=True)

    user: User
    billing: Optional[BillingSnapshot] = None
    settings: StageSettings = Field(default_factory=StageSettings)
    is_payment_return: bool = False
    session_flags: SessionFlags = Field(default_factory=SessionFlags)
    now: datetime

    @field_validator("now", mode="before")
    @classmethod
    def now_is_utc(cls, v):
        # Upstream dates are aware UTC; a naive clock is taken as UTC too
        try:
            return parse_timestamp(v)
        except InvalidTimestamp as e:
            raise ValueError(str(e))
