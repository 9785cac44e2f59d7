from __future__ import annotations

import os
from datetime import timedelta
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_MAX_SELECTIONS: Dict[str, int] = {
    "learned_coding": 5,
    "languages": 5,
    "frameworks": 5,
    "databases": 3,
    "cloud": 3,
    "dev_tools": 5,
    "version_control": 2,
    "ai_tools": 5,
    "stay_updated": 3,
    "learning_resources": 3,
    "certifications": 5,
    "payment_method": 3,
    "benefits": 5,
    "challenges": 5,
}


def _env_bool(name: str, default: bool = False) -> bool:
    v = (os.getenv(name) or "").strip().lower()
    if not v:
        return default
    return v in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_csv(name: str) -> Tuple[str, ...]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return ()
    return tuple(t.strip() for t in raw.split(",") if t.strip())


class FormConfig(BaseModel):
    """Immutable settings for one form controller instance."""

    model_config = ConfigDict(frozen=True)

    api_endpoint: str = Field(
        default="http://localhost:3000/api/create/survey",
        description="Ingestion endpoint receiving the POSTed response",
    )
    required_fields: Tuple[str, ...] = Field(
        default=("age", "employment_status"),
        description="Server-mandated fields, validated first and always collected",
    )
    max_selections: Mapping[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_MAX_SELECTIONS),
        validate_default=True,
        description="Checkbox group name -> maximum simultaneous selections",
    )
    survey_version: str = Field(default="2026.1.0")
    debug_mode: bool = Field(default=False, description="Surface uncaught errors as notices")
    autosave_interval: float = Field(default=30.0, gt=0, description="Seconds between autosave ticks")
    saved_state_expiry: timedelta = Field(default=timedelta(hours=24))
    storage_key: str = Field(default="zimDevSurvey2026")
    storage_dir: Optional[str] = Field(
        default=None,
        description="Directory for persisted snapshots (None = in-memory, lost on exit)",
    )
    request_timeout: Optional[float] = Field(
        default=None,
        description="Seconds before the submit request is abandoned (None = wait indefinitely)",
    )
    user_agent: str = Field(default="survey-form/2026.1.0 (python-httpx)")

    @field_validator("max_selections")
    @classmethod
    def _freeze_caps(cls, value: Mapping[str, int]) -> Mapping[str, int]:
        return MappingProxyType(dict(value))

    @classmethod
    def from_env(cls, **overrides) -> "FormConfig":
        """
        Build a config from `SURVEY_*` environment variables.

        - `SURVEY_API_ENDPOINT`
        - `SURVEY_REQUIRED_FIELDS` (comma-separated)
        - `SURVEY_DEBUG=1`
        - `SURVEY_AUTOSAVE_INTERVAL_SEC`
        - `SURVEY_SAVED_STATE_EXPIRY_HOURS`
        - `SURVEY_STORAGE_DIR`
        """
        values: Dict[str, object] = {}
        endpoint = (os.getenv("SURVEY_API_ENDPOINT") or "").strip()
        if endpoint:
            values["api_endpoint"] = endpoint
        required = _env_csv("SURVEY_REQUIRED_FIELDS")
        if required:
            values["required_fields"] = required
        values["debug_mode"] = _env_bool("SURVEY_DEBUG", default=False)
        interval = _env_int("SURVEY_AUTOSAVE_INTERVAL_SEC", 0)
        if interval > 0:
            values["autosave_interval"] = float(interval)
        expiry_hours = _env_int("SURVEY_SAVED_STATE_EXPIRY_HOURS", 0)
        if expiry_hours > 0:
            values["saved_state_expiry"] = timedelta(hours=expiry_hours)
        storage_dir = (os.getenv("SURVEY_STORAGE_DIR") or "").strip()
        if storage_dir:
            values["storage_dir"] = storage_dir
        values.update(overrides)
        return cls(**values)

    def max_for(self, group: str) -> Optional[int]:
        return self.max_selections.get(group)
