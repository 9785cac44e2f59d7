from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional

from survey_form.fields import ChoiceGroup, FieldHandle, FieldRegistry

logger = logging.getLogger(__name__)

WarnFn = Callable[[str], None]


@dataclass
class SelectionCounter:
    """The live "checked/max" badge shown next to a capped question."""

    checked: int
    maximum: int
    over_limit: bool = False

    @property
    def text(self) -> str:
        return f"{self.checked}/{self.maximum}"


class SelectionCaps:
    """
    Keeps every capped checkbox group at or below its maximum.

    A check that would push the group past its cap is reverted before any
    other listener can observe it, and a warning is raised through `warn`.
    """

    def __init__(self, limits: Mapping[str, int], registry: FieldRegistry, *, warn: Optional[WarnFn] = None) -> None:
        self.registry = registry
        self.warn = warn
        self.limits: Dict[str, int] = {}
        self.counters: Dict[str, SelectionCounter] = {}
        for name, maximum in limits.items():
            handle = registry.find(name)
            if not isinstance(handle, ChoiceGroup) or handle.is_radio:
                logger.debug("selection cap for %s skipped: no checkbox group with that name", name)
                continue
            self.limits[name] = int(maximum)
            self.counters[name] = SelectionCounter(checked=handle.checked_count, maximum=int(maximum))

    def install(self) -> None:
        for name in self.limits:
            handle = self.registry.choice(name)
            # Must run before any other change listener on the group.
            handle.on("change", self._on_change, first=True)

    def _on_change(self, handle: FieldHandle) -> None:
        if not isinstance(handle, ChoiceGroup):
            return
        maximum = self.limits[handle.name]
        counter = self.counters[handle.name]
        if handle.checked_count > maximum:
            self._revert_last(handle)
            counter.over_limit = True
            if self.warn is not None:
                self.warn(f"Maximum {maximum} selections allowed")
        else:
            counter.over_limit = False
        counter.checked = handle.checked_count

    def _revert_last(self, handle: ChoiceGroup) -> None:
        # The handle remembers which value was toggled last.
        value = handle.last_toggled
        if value is not None and handle.is_checked(value):
            handle.set_checked(value, False, notify=False)
        logger.info("selection cap reached for %s; reverted %r", handle.name, value)

    def refresh(self) -> None:
        for name, counter in self.counters.items():
            counter.checked = self.registry.choice(name).checked_count
            counter.over_limit = counter.checked > counter.maximum

    def violations(self) -> Dict[str, int]:
        """Groups currently above their cap -> cap."""
        out: Dict[str, int] = {}
        for name, maximum in self.limits.items():
            if self.registry.choice(name).checked_count > maximum:
                out[name] = maximum
        return out
