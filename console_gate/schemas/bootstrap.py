from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from console_gate.schemas.billing import BillingSnapshot
from console_gate.schemas.decision import Decision
from console_gate.schemas.interstitial import Interstitial
from console_gate.schemas.settings import TenantSettings

class BootstrapResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    decision: Decision
    interstitial: Interstitial
    payment_return_ref: Optional[str] = Field(None, alias="paymentReturnRef")
    is_trial_mode: bool = Field(True, alias="isTrialMode")
    billing: Optional[BillingSnapshot] = None
    settings: Optional[TenantSettings] = None
    collections: Dict[str, List[Any]] = Field(default_factory=dict)
    # True when a decision input could not be loaded and the pass fell back to 'none'
    degraded: bool = False
