"""Service layer helpers (engine transport, settings)."""

from .engine_client import EngineClient, EngineClientError, EngineCommandTransport, EvaluationTransport
from .settings import EvaluateSettings, Settings, SettingsStore

__all__ = [
    "EngineClient",
    "EngineClientError",
    "EngineCommandTransport",
    "EvaluateSettings",
    "EvaluationTransport",
    "Settings",
    "SettingsStore",
]
