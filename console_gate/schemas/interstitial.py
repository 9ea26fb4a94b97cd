from enum import Enum
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field

from console_gate.schemas.decision import DeterminedAction

class InterstitialKind(str, Enum):
    BLOCK_SCREEN = "block_screen"
    SYSTEM_STATUS = "system_status"
    WELCOME = "welcome"
    SETUP_WIZARD = "setup_wizard"
    GOOGLE_SUCCESS = "google_success"
    EXPIRATION_ALERT = "expiration_alert"
    GROWTH_ALERT = "growth_alert"
    NONE = "none"

class Interstitial(BaseModel):
    """Opaque 'present this interaction' instruction for the view layer."""
    model_config = ConfigDict(frozen=True)

    kind: InterstitialKind
    action: DeterminedAction
    props: Dict[str, Any] = Field(default_factory=dict)
