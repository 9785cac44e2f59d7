from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

from survey_form.fields import ChoiceGroup, FieldRegistry, TextField


def collect_form_data(registry: FieldRegistry, *, required_fields: Sequence[str] = ()) -> Dict[str, Any]:
    """
    Serialize the form in one pass, without touching its state.

    - checkbox groups: ordered list of checked values, `[]` when nothing is
      checked so "asked, none chosen" is distinguishable from "not asked"
    - radio groups: the checked value, omitted when none is
    - text/select: trimmed string, omitted when empty unless server-mandated
    """
    required = set(required_fields)
    data: Dict[str, Any] = {}
    for handle in registry:
        if not handle.spec.collect:
            continue
        if isinstance(handle, ChoiceGroup):
            if handle.is_radio:
                if handle.selected is not None:
                    data[handle.name] = handle.selected
            else:
                data[handle.name] = handle.checked
        elif isinstance(handle, TextField):
            value = handle.trimmed
            if value or handle.name in required:
                data[handle.name] = value
    return data


def has_collected_values(data: Dict[str, Any]) -> bool:
    """True when at least one entry carries an answer (empty lists/strings do not count)."""
    return any(_is_answer(v) for v in data.values())


def _is_answer(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return any(_is_answer(v) for v in value)
    return value is not None


def missing_required(data: Dict[str, Any], required_fields: Iterable[str]) -> list:
    return [name for name in required_fields if not _is_answer(data.get(name))]
