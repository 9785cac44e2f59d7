from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from survey_form.definition import RuleSpec
from survey_form.fields import ChoiceGroup, FieldHandle, FieldRegistry, TextField

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]


def equals_any(values: Sequence[str]) -> Predicate:
    wanted = {v.strip().lower() for v in values}
    return lambda value: value.strip().lower() in wanted


def contains(fragment: str) -> Predicate:
    return lambda value: fragment in value


@dataclass(frozen=True)
class ConditionalRule:
    trigger: str
    predicate: Predicate
    dependents: Tuple[str, ...]
    promoted: Tuple[str, ...] = ()

    @classmethod
    def from_spec(cls, spec: RuleSpec) -> "ConditionalRule":
        predicate = equals_any(spec.equals) if spec.equals else contains(spec.contains or "")
        return cls(
            trigger=spec.trigger,
            predicate=predicate,
            dependents=tuple(spec.fields),
            promoted=tuple(spec.required),
        )

    def matches(self, handle: FieldHandle) -> bool:
        return self.predicate(_trigger_value(handle))


def _trigger_value(handle: FieldHandle) -> str:
    if isinstance(handle, TextField):
        return handle.value
    if isinstance(handle, ChoiceGroup):
        return handle.selected or ""
    return ""


def apply_rule(rule: ConditionalRule, registry: FieldRegistry) -> bool:
    """
    Show and promote the dependents when the trigger matches; otherwise hide,
    demote and clear them so no stale hidden value is submitted.
    """
    active = rule.matches(registry.get(rule.trigger))
    for name in rule.dependents:
        dep = registry.get(name)
        dep.visible = active
        if active:
            dep.required = name in rule.promoted or dep.spec.required
        else:
            dep.required = False
            dep.clear()
            dep.clear_decoration()
    return active


class ConditionalFields:
    """Evaluates the rule table on every change of a trigger field."""

    def __init__(self, rules: Sequence[ConditionalRule], registry: FieldRegistry) -> None:
        self.rules: List[ConditionalRule] = list(rules)
        self.registry = registry

    @classmethod
    def from_specs(cls, specs: Sequence[RuleSpec], registry: FieldRegistry) -> "ConditionalFields":
        return cls([ConditionalRule.from_spec(s) for s in specs], registry)

    def install(self) -> None:
        for trigger in sorted({r.trigger for r in self.rules}):
            self.registry.get(trigger).on("change", self._on_change)

    def _on_change(self, handle: FieldHandle) -> None:
        for rule in self.rules:
            if rule.trigger == handle.name:
                active = apply_rule(rule, self.registry)
                logger.debug("conditional %s -> %s: %s", rule.trigger, ",".join(rule.dependents), active)

    def evaluate_all(self) -> None:
        for rule in self.rules:
            apply_rule(rule, self.registry)
