from enum import Enum
from typing import List
from pydantic import BaseModel, Field

class SessionFlag(str, Enum):
    EXP_ALERT_SEEN = "expAlertSeen"
    GROWTH_ALERT_SEEN = "growthAlertSeen"
    GOOGLE_SUCCESS_SEEN = "googleSuccessSeen"

class DurableField(str, Enum):
    DISMISSED_PROMPT = "dismissedPrompt"
    SUCCESS_SHOWN = "successShown"

class AcknowledgedInterstitial(str, Enum):
    EXPIRATION_ALERT = "expiration_alert"
    GROWTH = "growth"
    GOOGLE_SUCCESS = "google_success"

class AcknowledgementChoice(str, Enum):
    REMIND_LATER = "remind_later"
    DISMISS = "dismiss"
    CLOSE = "close"

class AcknowledgementRequest(BaseModel):
    interstitial: AcknowledgedInterstitial
    choice: AcknowledgementChoice

class AcknowledgementResult(BaseModel):
    flags: List[SessionFlag] = Field(default_factory=list)
    durable: bool = False
