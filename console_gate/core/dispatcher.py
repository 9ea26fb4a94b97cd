from typing import Any, Callable, Dict, Tuple

from console_gate.schemas.decision import Decision, DeterminedAction, GrowthVariant
from console_gate.schemas.interstitial import Interstitial, InterstitialKind

# Copy for the growth alert, one entry per variant
GROWTH_COPY: Dict[GrowthVariant, Dict[str, str]] = {
    GrowthVariant.VERIFY: {
        "title": "Google presence",
        "description": "We have not verified your business on Google Maps yet. It is how customers find your store.",
        "primaryLabel": "Verify presence",
    },
    GrowthVariant.MAPS_OFFER: {
        "title": "Google presence",
        "description": "Your business was not found on Maps. Customers may be going to competitors.",
        "primaryLabel": "Verify presence",
    },
    GrowthVariant.ECOMMERCE_OFFER: {
        "title": "E-commerce Smart-Store",
        "description": "Connect your system to an online store?",
        "primaryLabel": "See e-commerce",
    },
    GrowthVariant.SINGLE_TENANT_OFFER: {
        "title": "Time to scale",
        "description": "You are ready for the next level. Move to the Exclusive environment with an isolated database.",
        "primaryLabel": "See the Exclusive plan",
    },
}

def _growth_props(decision: Decision) -> Dict[str, Any]:
    return {"variant": decision.variant.value, **GROWTH_COPY[decision.variant]}

def _expiration_props(decision: Decision) -> Dict[str, Any]:
    return {"variant": decision.expiration.variant.value, "daysLeft": decision.expiration.days_left}

_ROUTES: Dict[DeterminedAction, Tuple[InterstitialKind, Callable[[Decision], Dict[str, Any]]]] = {
    DeterminedAction.BLOCK: (InterstitialKind.BLOCK_SCREEN, lambda d: {}),
    DeterminedAction.SETUP_ST: (InterstitialKind.SYSTEM_STATUS, lambda d: {"firstRun": True}),
    DeterminedAction.WELCOME: (InterstitialKind.WELCOME, lambda d: {}),
    DeterminedAction.FORCE_CONTRACT: (InterstitialKind.SETUP_WIZARD, lambda d: {"forceSetup": True}),
    DeterminedAction.GOOGLE_SUCCESS: (InterstitialKind.GOOGLE_SUCCESS, lambda d: {"mapsUrl": d.maps_uri or ""}),
    DeterminedAction.EXPIRATION_ALERT: (InterstitialKind.EXPIRATION_ALERT, _expiration_props),
    DeterminedAction.GROWTH: (InterstitialKind.GROWTH_ALERT, _growth_props),
    DeterminedAction.NONE: (InterstitialKind.NONE, lambda d: {}),
}

def dispatch(decision: Decision) -> Interstitial:
    """
    Maps a decision to the single interstitial the view should present.
    Pure lookup: no durable side effects, so repeated calls are harmless.
    """
    kind, build_props = _ROUTES[decision.action]
    return Interstitial(kind=kind, action=decision.action, props=build_props(decision))
