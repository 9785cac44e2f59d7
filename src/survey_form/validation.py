from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from survey_form.definition import FieldType
from survey_form.fields import ChoiceGroup, FieldHandle, FieldRegistry, SelectField

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MSG_REQUIRED = "This field is required"
MSG_SELECT = "Please select an option"
MSG_CHOICE = "Please select at least one option"
MSG_EMAIL = "Please enter a valid email address"


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str
    element: Optional[FieldHandle] = None


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[ValidationIssue] = field(default_factory=list)

    @property
    def first_element(self) -> Optional[FieldHandle]:
        for issue in self.errors:
            if issue.element is not None:
                return issue.element
        return None

    def fields(self) -> List[str]:
        return [e.field for e in self.errors]


def _empty_message(handle: FieldHandle) -> str:
    if handle.spec.required_message:
        return handle.spec.required_message
    if isinstance(handle, ChoiceGroup):
        return MSG_CHOICE
    if isinstance(handle, SelectField):
        return MSG_SELECT
    return MSG_REQUIRED


def validate_field(handle: FieldHandle) -> bool:
    """
    Re-decorate one field. Only the decoration changes, never the value.
    """
    handle.clear_decoration()

    if handle.required and not handle.has_value():
        handle.mark_invalid(_empty_message(handle))
        return False

    if handle.type == FieldType.EMAIL and handle.has_value():
        value = getattr(handle, "trimmed", "")
        if not EMAIL_RE.match(value):
            handle.mark_invalid(MSG_EMAIL)
            return False

    if handle.has_value() or handle.type.is_choice_group:
        handle.mark_valid()
    return True


def validate_form(
    registry: FieldRegistry,
    *,
    required_fields: Sequence[str],
    caps: Optional[Dict[str, int]] = None,
) -> ValidationResult:
    """
    Full pass in priority order:
    1. server-mandated fields (the omissions that would get the request rejected)
    2. every other visible required field, plus filled-in email fields
    3. capped checkbox groups above their maximum (`caps` = violations only)
    """
    for handle in registry:
        handle.clear_decoration()

    errors: List[ValidationIssue] = []
    server_required = list(required_fields)

    for name in server_required:
        handle = registry.find(name)
        if handle is None:
            errors.append(ValidationIssue(field=name, message=f'Field "{name}" is missing from the form'))
            continue
        if not handle.has_value():
            handle.mark_invalid(f"{handle.label} is required")
            errors.append(ValidationIssue(field=name, message=f"{handle.label} is required by the server", element=handle))

    for handle in registry:
        if handle.name in server_required or not handle.visible:
            continue
        if not (handle.required or (handle.type == FieldType.EMAIL and handle.has_value())):
            continue
        if validate_field(handle):
            continue
        if handle.spec.required_message:
            message = handle.spec.required_message
        elif handle.has_value():
            message = f"{handle.label}: {handle.decoration.message}"
        else:
            message = f"{handle.label} is required"
        errors.append(ValidationIssue(field=handle.name, message=message, element=handle))

    for name, maximum in (caps or {}).items():
        handle = registry.find(name)
        errors.append(ValidationIssue(field=name, message=f"Maximum {maximum} selections allowed", element=handle))

    return ValidationResult(is_valid=not errors, errors=errors)
