"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = [
    "EvaluateSettings",
    "Settings",
    "SettingsStore",
    "DEFAULT_DOCUMENT_SELECTOR",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".sceval"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "SCEVAL_ENGINE_COMMAND": "engine_command",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "SCEVAL_DEBUG_LOGGING": "debug_logging",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "SCEVAL_FLASH_TIME": "evaluate.flash_time",
    "SCEVAL_POST_FLASH_TIME": "evaluate.post_flash_time",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
DEFAULT_DOCUMENT_SELECTOR: tuple[dict[str, str], ...] = ({"language": "supercollider"},)

# Dotted option names as exposed to the evaluation commands.
_OPTION_ALIASES: Mapping[str, str] = {
    "evaluate.flashTime": "evaluate.flash_time",
    "evaluate.postFlashTime": "evaluate.post_flash_time",
    "engine.command": "engine_command",
    "engine.args": "engine_args",
    "documentSelector": "document_selector",
}


@dataclass(slots=True)
class EvaluateSettings:
    """Flash timings (milliseconds) around the evaluation result annotation."""

    flash_time: int = 50
    post_flash_time: int = 600


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    engine_command: str = "sclang"
    engine_args: list[str] = field(default_factory=lambda: ["-i", "lsp"])
    document_selector: list[dict[str, str]] = field(
        default_factory=lambda: [dict(entry) for entry in DEFAULT_DOCUMENT_SELECTOR]
    )
    debug_logging: bool = False
    evaluate: EvaluateSettings = field(default_factory=EvaluateSettings)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the option named ``key`` (e.g. ``evaluate.flashTime``) or ``default``."""

        path = _OPTION_ALIASES.get(key, key)
        value: Any = self
        for part in path.split("."):
            if isinstance(value, Mapping):
                value = value.get(part)
            else:
                value = getattr(value, part, None)
            if value is None:
                return default
        return value


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            evaluate_payload = data.get("evaluate")
            if isinstance(evaluate_payload, Mapping):
                try:
                    data["evaluate"] = EvaluateSettings(**evaluate_payload)
                except TypeError:
                    data["evaluate"] = EvaluateSettings()
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
        LOGGER.debug("Settings loaded from %s (version=%s)", self._path, payload.get("version"))

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            data = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("Settings file %s does not hold an object", self._path)
            return {}
        return data

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {item.name for item in fields(Settings)}
        evaluate_fields = {item.name for item in fields(EvaluateSettings)}
        filtered: Dict[str, Any] = {}
        evaluate_updates: Dict[str, Any] = {}
        for raw_key, value in overrides.items():
            if value is None:
                continue
            key = _OPTION_ALIASES.get(raw_key, raw_key)
            if key.startswith("evaluate."):
                name = key.split(".", 1)[1]
                if name in evaluate_fields:
                    evaluate_updates[name] = value
                continue
            if key in allowed and key != "evaluate":
                filtered[key] = value
        if evaluate_updates:
            filtered["evaluate"] = replace(settings.evaluate, **evaluate_updates)
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid integer",
                    env_name,
                    value,
                )
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}
