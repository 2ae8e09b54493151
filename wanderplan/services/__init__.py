"""Services for the trip wizard."""
from .llm_client import LLMClient
from .gateway import AIGateway
from .tracker import LocationTracker, PushLocationSource
from .wizard import WizardController

__all__ = [
    "LLMClient",
    "AIGateway",
    "LocationTracker",
    "PushLocationSource",
    "WizardController",
]
