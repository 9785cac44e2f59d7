"""
Local durable storage for form snapshots.

The backends mirror the browser's `localStorage` surface (string values under
string keys); every write replaces the whole snapshot, last writer wins.
"""

from __future__ import annotations

import json
import os
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from survey_form.errors import SurveyFormError


class SnapshotError(SurveyFormError):
    """A stored snapshot could not be decoded."""


class FormSnapshot(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    version: str = ""

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def age(self, now: datetime) -> timedelta:
        return now - self.timestamp

    def is_expired(self, now: datetime, expiry: timedelta) -> bool:
        return self.age(now) > expiry


class LocalStorage(ABC):
    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Stored string under `key`, or None."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove_item(self, key: str) -> None: ...


class MemoryStorage(LocalStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]+")


class FileStorage(LocalStorage):
    """One JSON file per key under `directory`."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe = _SAFE_KEY.sub("_", key).strip("._") or "default"
        return self.directory / f"{safe}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass


def write_snapshot(storage: LocalStorage, key: str, snapshot: FormSnapshot) -> None:
    storage.set_item(key, snapshot.model_dump_json())


def read_snapshot(storage: LocalStorage, key: str) -> Optional[FormSnapshot]:
    try:
        raw = storage.get_item(key)
        if raw is None:
            return None
        return FormSnapshot.model_validate(json.loads(raw))
    except (ValueError, RecursionError, ValidationError) as e:
        # ValueError includes UnicodeDecodeError from file-backed storage
        raise SnapshotError(f"Unreadable snapshot under {key!r}: {e}") from e
