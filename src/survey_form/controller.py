"""
Form controller: validation, autosave and submission for one survey form.

The controller owns its mutable state (`ControllerState`) and the visible
feedback (`FormView`); configuration is the immutable `FormConfig` it was
built with. Field access goes through the `FieldRegistry`.

Submit lifecycle:
  IDLE -> SUBMITTING -> IDLE (outcome SUCCESS: form reset, snapshot removed)
                     -> IDLE (outcome FAILED: form kept for retry)
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Union

import anyio

from survey_form.caps import SelectionCaps
from survey_form.collect import collect_form_data, has_collected_values, missing_required
from survey_form.conditional import ConditionalFields
from survey_form.config import FormConfig
from survey_form.definition import FieldType, SurveyDefinition, load_survey_definition
from survey_form.errors import IncompleteSubmissionError, SubmissionError
from survey_form.fields import ChoiceGroup, FieldHandle, FieldRegistry, TextField
from survey_form.storage import (
    FileStorage,
    FormSnapshot,
    LocalStorage,
    MemoryStorage,
    SnapshotError,
    read_snapshot,
    write_snapshot,
)
from survey_form.transport import SurveyClient
from survey_form.validation import ValidationResult, validate_field, validate_form
from survey_form.view import FormView, NoticeLevel

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class Submitter(Protocol):
    def submit(self, payload: Dict[str, Any]) -> Awaitable[Dict[str, Any]]: ...


class SubmitPhase(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"


class SubmitOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    INVALID = "invalid"
    REJECTED = "rejected"


@dataclass
class ControllerState:
    phase: SubmitPhase = SubmitPhase.IDLE
    last_outcome: Optional[SubmitOutcome] = None
    last_saved: Optional[datetime] = None
    current_section: int = 1

    @property
    def is_submitting(self) -> bool:
        return self.phase == SubmitPhase.SUBMITTING


@dataclass(frozen=True)
class Progress:
    filled_required: int
    total_required: int
    percent: int
    current_section: int
    total_sections: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_submission_id() -> str:
    return f"sub_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class FormController:
    def __init__(
        self,
        config: FormConfig,
        registry: FieldRegistry,
        *,
        storage: LocalStorage,
        client: Submitter,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.storage = storage
        self.client = client
        self.clock: Clock = clock or _utcnow
        self.state = ControllerState()
        self.view = FormView()
        self.conditional = ConditionalFields.from_specs(registry.definition.rules, registry)
        self.caps = SelectionCaps(config.max_selections, registry, warn=self._warn)
        self._wire()

    def _wire(self) -> None:
        self.registry.set_error_hook(self.report_error)
        self.caps.install()
        self.conditional.install()
        self.conditional.evaluate_all()
        for handle in self.registry:
            handle.on("change", self._on_field_event)
            handle.on("blur", self._on_field_event)

    def _on_field_event(self, handle: FieldHandle) -> None:
        self.state.current_section = handle.section
        if handle.required or handle.type == FieldType.EMAIL:
            self.validate_field(handle)

    def _warn(self, message: str) -> None:
        self.view.notify(message, NoticeLevel.WARNING)

    def field(self, name: str) -> FieldHandle:
        return self.registry.get(name)

    # -- validation -----------------------------------------------------------

    def validate_field(self, field: Union[FieldHandle, str]) -> bool:
        handle = self.registry.get(field) if isinstance(field, str) else field
        return validate_field(handle)

    def validate_form(self) -> ValidationResult:
        self.view.dismiss_error_summary()
        result = validate_form(
            self.registry,
            required_fields=self.config.required_fields,
            caps=self.caps.violations(),
        )
        if not result.is_valid:
            self.view.show_error_summary(result.errors)
            self.view.focus(result.first_element)
        return result

    # -- data -----------------------------------------------------------------

    def collect_form_data(self) -> Dict[str, Any]:
        return collect_form_data(self.registry, required_fields=self.config.required_fields)

    def build_payload(self, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(data)
        payload["user_agent"] = self.config.user_agent
        payload["submission_id"] = generate_submission_id()
        payload["submitted_at"] = self.clock().isoformat()
        payload["survey_version"] = self.config.survey_version
        return payload

    def has_unsaved_changes(self) -> bool:
        return has_collected_values(self.collect_form_data())

    def check_required_fields(self) -> Dict[str, List[str]]:
        data = self.collect_form_data()
        missing = missing_required(data, self.config.required_fields)
        present = [f for f in self.config.required_fields if f not in missing]
        return {"missing": missing, "present": present}

    def export_form_data(self, directory: Union[str, Path] = ".") -> Path:
        data = self.collect_form_data()
        path = Path(directory) / f"zim-dev-survey-{self.clock().date().isoformat()}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        self.view.notify("Data exported to JSON file", NoticeLevel.SUCCESS)
        return path

    def progress(self) -> Progress:
        required = self.registry.required_fields()
        filled = sum(1 for h in required if h.has_value())
        percent = round(filled / len(required) * 100) if required else 0
        return Progress(
            filled_required=filled,
            total_required=len(required),
            percent=percent,
            current_section=self.state.current_section,
            total_sections=len(self.registry.definition.sections),
        )

    # -- submission -----------------------------------------------------------

    async def handle_submit(self) -> SubmitOutcome:
        if self.state.is_submitting:
            self.view.notify("Submission in progress...", NoticeLevel.INFO)
            return SubmitOutcome.REJECTED

        result = self.validate_form()
        if not result.is_valid:
            logger.info("validation failed: %s", ", ".join(result.fields()))
            self.view.notify(f"Please fix {len(result.errors)} error(s) before submitting", NoticeLevel.ERROR)
            return SubmitOutcome.INVALID

        self.state.phase = SubmitPhase.SUBMITTING
        self.view.show_loading(True)
        outcome = SubmitOutcome.FAILED
        try:
            data = self.collect_form_data()
            missing = missing_required(data, self.config.required_fields)
            if missing:
                raise IncompleteSubmissionError(f"Missing required fields: {', '.join(missing)} are mandatory")
            payload = self.build_payload(data)
            logger.info("submitting survey %s (%s fields)", payload["submission_id"], len(data))
            await self.client.submit(payload)
            self._complete_submission()
            outcome = SubmitOutcome.SUCCESS
        except SubmissionError as e:
            logger.warning("submission failed: %s", e)
            self.view.show_error(f"Failed to submit: {e}")
        except Exception as e:
            self.report_error(e)
            self.view.show_error("Failed to submit: unexpected error. Please try again.")
        finally:
            self.state.phase = SubmitPhase.IDLE
            self.state.last_outcome = outcome
            self.view.show_loading(False)
        return outcome

    def _complete_submission(self) -> None:
        self.view.show_success()
        self.storage.remove_item(self.config.storage_key)
        self.state.last_saved = None
        self.reset_form()

    def reset_form(self) -> None:
        self.registry.reset()
        self.conditional.evaluate_all()
        self.caps.refresh()
        self.view.dismiss_error_summary()
        self.view.focus(None)

    # -- persistence ----------------------------------------------------------

    def save_form_state(self) -> bool:
        if self.state.is_submitting:
            return False
        data = self.collect_form_data()
        if not has_collected_values(data):
            return False
        snapshot = FormSnapshot(data=data, timestamp=self.clock(), version=self.config.survey_version)
        try:
            write_snapshot(self.storage, self.config.storage_key, snapshot)
        except OSError as e:
            logger.error("error saving form state: %s", e)
            return False
        self.state.last_saved = snapshot.timestamp
        if self.config.debug_mode:
            logger.debug("form state saved at %s", snapshot.timestamp.isoformat())
        return True

    def load_form_state(self) -> int:
        key = self.config.storage_key
        try:
            snapshot = read_snapshot(self.storage, key)
        except (SnapshotError, OSError) as e:
            logger.warning("discarding saved state: %s", e)
            self.storage.remove_item(key)
            return 0
        if snapshot is None:
            return 0
        if snapshot.is_expired(self.clock(), self.config.saved_state_expiry):
            logger.info("saved state from %s expired; discarded", snapshot.timestamp.isoformat())
            self.storage.remove_item(key)
            return 0

        restored = self.apply_answers(snapshot.data)
        if restored > 0:
            self.view.notify(f"Restored {restored} fields", NoticeLevel.SUCCESS)
            self.state.last_saved = snapshot.timestamp
        return restored

    def apply_answers(self, data: Dict[str, Any]) -> int:
        """Set values by field name through the normal change path; returns how many took."""
        applied = 0
        for name, value in data.items():
            handle = self.registry.find(name)
            if handle is None:
                continue
            applied += self._restore(handle, value)
        return applied

    def _restore(self, handle: FieldHandle, value: Any) -> int:
        if isinstance(handle, ChoiceGroup):
            values = value if isinstance(value, list) else [value]
            count = 0
            for v in values:
                if v is None or not handle.has_option(str(v)):
                    continue
                # Goes through the same change path as a click, caps included.
                handle.set_checked(str(v), True)
                if handle.is_checked(str(v)):
                    count += 1
            return count
        if isinstance(handle, TextField) and not isinstance(value, (list, dict)):
            handle.set_value(value)
            return 1
        return 0

    async def run_autosave(self, *, ticks: Optional[int] = None) -> None:
        """Save every `autosave_interval` seconds; forever unless `ticks` is given."""
        done = 0
        while ticks is None or done < ticks:
            await anyio.sleep(self.config.autosave_interval)
            self.save_form_state()
            done += 1

    # -- error reporting ------------------------------------------------------

    def report_error(self, exc: BaseException) -> None:
        logger.error("unhandled error: %r", exc, exc_info=exc)
        if self.config.debug_mode:
            self.view.notify(f"Error: {exc}", NoticeLevel.ERROR)

    def install_exception_handler(self, loop: asyncio.AbstractEventLoop) -> None:
        """Route errors nobody awaited (failed tasks, callbacks) to `report_error`."""

        def _handler(_loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
            exc = context.get("exception")
            if isinstance(exc, BaseException):
                self.report_error(exc)
                return
            message = str(context.get("message") or "unknown event loop error")
            logger.error("event loop error: %s", message)
            if self.config.debug_mode:
                self.view.notify(f"Error: {message}", NoticeLevel.ERROR)

        loop.set_exception_handler(_handler)

    async def aclose(self) -> None:
        aclose = getattr(self.client, "aclose", None)
        if aclose is not None:
            await aclose()


def build_controller(
    config: Optional[FormConfig] = None,
    *,
    survey: Union[SurveyDefinition, str, Path, None] = None,
    storage: Optional[LocalStorage] = None,
    client: Optional[Submitter] = None,
    clock: Optional[Clock] = None,
    restore: bool = True,
) -> FormController:
    """
    Wire a controller the way the page does on load: registry, caps,
    conditional fields, then restore any saved progress.
    """
    config = config or FormConfig.from_env()
    definition = survey if isinstance(survey, SurveyDefinition) else load_survey_definition(survey)
    registry = FieldRegistry(definition)
    if storage is None:
        storage = FileStorage(config.storage_dir) if config.storage_dir else MemoryStorage()
    if client is None:
        client = SurveyClient(config.api_endpoint, timeout=config.request_timeout, user_agent=config.user_agent)
    controller = FormController(config, registry, storage=storage, client=client, clock=clock)
    if restore:
        controller.load_form_state()
    return controller
