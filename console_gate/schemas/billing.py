import logging
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from console_gate.core.errors import InvalidTimestamp
from console_gate.core.timewindow import parse_timestamp

logger = logging.getLogger(__name__)

class BillingPlan(str, Enum):
    TRIAL = "trial"
    SINGLE_TENANT = "single_tenant"

class BillingStatus(str, Enum):
    ACTIVE = "active"
    BLOCKED = "blocked"
    EXPIRED = "expired"

class RequestType(str, Enum):
    GOOGLE_MAPS = "google_maps"
    ECOMMERCE = "ecommerce"
    UPGRADE = "upgrade"

class RequestStatus(str, Enum):
    PENDING = "pending"
    WAITING_PAYMENT = "waiting_payment"
    APPROVED = "approved"
    COMPLETED = "completed"

# (field name, wire name) of every date the gate reads
TIMESTAMP_FIELDS = (("trial_ends_at", "trialEndsAt"), ("subscription_ends_at", "subscriptionEndsAt"))

OPEN_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.WAITING_PAYMENT)
FULFILLED_REQUEST_STATUSES = (RequestStatus.APPROVED, RequestStatus.COMPLETED)

class ServiceRequest(BaseModel):
    # type/status stay plain strings: the billing backend also emits
    # 'extension', 'monthly', 'rejected' etc. which the gate ignores.
    model_config = ConfigDict(frozen=True)

    type: str
    status: str

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_REQUEST_STATUSES

    @property
    def is_fulfilled(self) -> bool:
        return self.status in FULFILLED_REQUEST_STATUSES

class BillingSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    plan: BillingPlan
    status: BillingStatus
    trial_ends_at: Optional[datetime] = Field(None, alias="trialEndsAt")
    subscription_ends_at: Optional[datetime] = Field(None, alias="subscriptionEndsAt")
    billing_day_configured: bool = Field(False, alias="billingDayConfigured")
    extension_count: int = Field(0, alias="extensionCount")
    requests: Tuple[ServiceRequest, ...] = ()
    # Dates that were sent but could not be parsed; not part of the wire shape
    invalid_dates: FrozenSet[str] = Field(default_factory=frozenset, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def drop_invalid_timestamps(cls, data):
        # A bad date must not sink the whole snapshot; it only disables the expiration alert
        if not isinstance(data, dict):
            return data
        data = dict(data)
        invalid = set()
        for name, alias in TIMESTAMP_FIELDS:
            key = alias if alias in data else name
            value = data.get(key)
            if value is None or value == "":
                data[key] = None
                continue
            try:
                data[key] = parse_timestamp(value)
            except InvalidTimestamp as e:
                logger.warning(f"Ignoring {alias}: {e}")
                data[key] = None
                invalid.add(name)
        data["invalid_dates"] = frozenset(invalid)
        return data

    def has_date(self, name: str) -> bool:
        """True when the date was sent at all, even if it could not be parsed."""
        return getattr(self, name) is not None or name in self.invalid_dates

    @field_validator("billing_day_configured", mode="before")
    @classmethod
    def none_is_false(cls, v):
        return False if v is None else v

    @field_validator("extension_count", mode="before")
    @classmethod
    def none_is_zero(cls, v):
        return 0 if v is None else v

    @field_validator("requests", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return () if v is None else v

    def first_request(self, request_type: RequestType) -> Optional[ServiceRequest]:
        return next((r for r in self.requests if r.type == request_type), None)

    def has_request(self, request_type: RequestType, statuses) -> bool:
        return any(r.type == request_type and r.status in statuses for r in self.requests)
