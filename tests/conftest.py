from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

import pytest


_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
for _p in (_REPO_ROOT, _SRC):
    if _p.exists() and str(_p) not in sys.path:
        sys.path.insert(0, str(_p))


class FakeClock:
    def __init__(self, now: Optional[datetime] = None) -> None:
        self.now = now or datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingClient:
    """Stands in for SurveyClient: records payloads, optionally blocks or fails."""

    def __init__(self) -> None:
        self.payloads: List[Dict[str, Any]] = []
        self.response: Dict[str, Any] = {"success": True}
        self.error: Optional[BaseException] = None
        self.gate = None

    async def submit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.payloads.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.response


class _FakeTable:
    def __init__(self, owner: "FakeSupabase", name: str) -> None:
        self.owner = owner
        self.name = name
        self.pending: Optional[Dict[str, Any]] = None

    def insert(self, row: Dict[str, Any]) -> "_FakeTable":
        self.pending = row
        return self

    def execute(self) -> SimpleNamespace:
        if self.owner.fail:
            raise RuntimeError("relation does not exist")
        self.owner.rows.append((self.name, self.pending))
        return SimpleNamespace(data=[self.pending])


class FakeSupabase:
    def __init__(self) -> None:
        self.rows: List[Tuple[str, Dict[str, Any]]] = []
        self.fail = False

    def table(self, name: str) -> _FakeTable:
        return _FakeTable(self, name)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture
def storage():
    from survey_form.storage import MemoryStorage

    return MemoryStorage()


@pytest.fixture
def controller(clock, client, storage):
    from survey_form.config import FormConfig
    from survey_form.controller import build_controller

    return build_controller(FormConfig(), storage=storage, client=client, clock=clock)


@pytest.fixture
def fill_required():
    """Answer every question that is required on a fresh form."""

    def _fill(controller) -> None:
        controller.field("age").set_value("25-34")
        controller.field("gender").set_value("Female")
        controller.field("province").set_value("Harare")
        controller.field("education_level").set_value("Bachelor's degree")
        controller.field("employment_status").check("Employed")
        controller.field("consent").check("agree")

    return _fill


@pytest.fixture
def fake_supabase(monkeypatch) -> FakeSupabase:
    import api.supabase_client as supabase_client

    fake = FakeSupabase()
    monkeypatch.setattr(supabase_client, "_client", fake)
    return fake
