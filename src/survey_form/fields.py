"""
Typed field handles and the registry that owns them.

A handle is what the controller holds instead of a DOM node: it carries the
current value, the live `required` / `visible` flags, the visual decoration
(invalid / valid / inline message) and the change/blur listeners. The
registry is built once from a `SurveyDefinition` and is the only way to reach
a field by name.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Type, TypeVar

from survey_form.definition import PLACEHOLDER_VALUES, FieldSpec, FieldType, OptionSpec, SurveyDefinition
from survey_form.errors import UnknownFieldError

logger = logging.getLogger(__name__)

Listener = Callable[["FieldHandle"], None]
ErrorHook = Callable[[BaseException], None]
H = TypeVar("H", bound="FieldHandle")

EVENTS = ("change", "blur")


@dataclass
class Decoration:
    invalid: bool = False
    valid: bool = False
    message: Optional[str] = None

    def clear(self) -> None:
        self.invalid = False
        self.valid = False
        self.message = None


class FieldHandle(ABC):
    def __init__(self, spec: FieldSpec, *, section: int) -> None:
        self.spec = spec
        self.section = section
        self.required = spec.required
        self.visible = not spec.hidden
        self.decoration = Decoration()
        self._listeners: Dict[str, List[Listener]] = {e: [] for e in EVENTS}
        self._error_hook: Optional[ErrorHook] = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def type(self) -> FieldType:
        return self.spec.type

    @property
    def label(self) -> str:
        return self.spec.display_label

    # -- events -------------------------------------------------------------

    def on(self, event: str, listener: Listener, *, first: bool = False) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unsupported event: {event}")
        if first:
            self._listeners[event].insert(0, listener)
        else:
            self._listeners[event].append(listener)

    def dispatch(self, event: str) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(self)
            except Exception as e:
                if self._error_hook is None:
                    raise
                self._error_hook(e)

    def blur(self) -> None:
        self.dispatch("blur")

    # -- decoration ---------------------------------------------------------

    def mark_invalid(self, message: str) -> None:
        self.decoration.invalid = True
        self.decoration.valid = False
        self.decoration.message = message

    def mark_valid(self) -> None:
        self.decoration.invalid = False
        self.decoration.valid = True
        self.decoration.message = None

    def clear_decoration(self) -> None:
        self.decoration.clear()

    # -- value --------------------------------------------------------------

    @abstractmethod
    def has_value(self) -> bool: ...

    @abstractmethod
    def clear(self) -> None: ...


class TextField(FieldHandle):
    """text, email, textarea and number inputs."""

    def __init__(self, spec: FieldSpec, *, section: int) -> None:
        super().__init__(spec, section=section)
        self.value = ""

    def set_value(self, value: object, *, notify: bool = True) -> None:
        self.value = "" if value is None else str(value)
        if notify:
            self.dispatch("change")

    @property
    def trimmed(self) -> str:
        return self.value.strip()

    def has_value(self) -> bool:
        return bool(self.trimmed)

    def clear(self) -> None:
        self.value = ""


class SelectField(TextField):
    """Single-choice dropdown. Assigning a value that is not an option selects nothing."""

    @property
    def options(self) -> List[OptionSpec]:
        return self.spec.options

    def has_option(self, value: str) -> bool:
        return any(o.value == value for o in self.options)

    def set_value(self, value: object, *, notify: bool = True) -> None:
        v = "" if value is None else str(value)
        if not self.has_option(v):
            v = ""
        super().set_value(v, notify=notify)

    @property
    def selected_option(self) -> Optional[OptionSpec]:
        for o in self.options:
            if o.value == self.value:
                return o
        return None

    def is_placeholder(self) -> bool:
        opt = self.selected_option
        return self.trimmed in PLACEHOLDER_VALUES or opt is None or opt.disabled

    def has_value(self) -> bool:
        return not self.is_placeholder()


class ChoiceGroup(FieldHandle):
    """
    Radio or checkbox inputs sharing one name.

    `checked` is kept in option order so collected lists are stable.
    """

    def __init__(self, spec: FieldSpec, *, section: int) -> None:
        super().__init__(spec, section=section)
        self._checked: Dict[str, bool] = {o.value: False for o in spec.options}
        self.last_toggled: Optional[str] = None

    @property
    def options(self) -> List[OptionSpec]:
        return self.spec.options

    @property
    def is_radio(self) -> bool:
        return self.type == FieldType.RADIO

    def has_option(self, value: str) -> bool:
        return value in self._checked

    @property
    def checked(self) -> List[str]:
        return [v for v, on in self._checked.items() if on]

    @property
    def checked_count(self) -> int:
        return sum(1 for on in self._checked.values() if on)

    @property
    def selected(self) -> Optional[str]:
        values = self.checked
        return values[0] if values else None

    def is_checked(self, value: str) -> bool:
        return self._checked.get(value, False)

    def set_checked(self, value: str, checked: bool = True, *, notify: bool = True) -> None:
        if value not in self._checked:
            raise ValueError(f"'{value}' is not an option of {self.name}")
        if checked and self.is_radio:
            for v in self._checked:
                self._checked[v] = False
        self._checked[value] = checked
        self.last_toggled = value
        if notify:
            self.dispatch("change")

    def check(self, value: str) -> None:
        self.set_checked(value, True)

    def uncheck(self, value: str) -> None:
        self.set_checked(value, False)

    def has_value(self) -> bool:
        return self.checked_count > 0

    def clear(self) -> None:
        for v in self._checked:
            self._checked[v] = False
        self.last_toggled = None


_HANDLE_TYPES: Dict[FieldType, Type[FieldHandle]] = {
    FieldType.TEXT: TextField,
    FieldType.EMAIL: TextField,
    FieldType.TEXTAREA: TextField,
    FieldType.NUMBER: TextField,
    FieldType.SELECT: SelectField,
    FieldType.RADIO: ChoiceGroup,
    FieldType.CHECKBOX: ChoiceGroup,
}


class FieldRegistry:
    """Name -> handle lookup, in form order."""

    def __init__(self, definition: SurveyDefinition) -> None:
        self.definition = definition
        self._fields: Dict[str, FieldHandle] = {}
        for section_no, section in enumerate(definition.sections, start=1):
            for spec in section.fields:
                self._fields[spec.name] = _HANDLE_TYPES[spec.type](spec, section=section_no)
        logger.debug("field registry built: %s fields in %s sections", len(self._fields), len(definition.sections))

    def __iter__(self) -> Iterator[FieldHandle]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def find(self, name: str) -> Optional[FieldHandle]:
        return self._fields.get(name)

    def get(self, name: str) -> FieldHandle:
        handle = self._fields.get(name)
        if handle is None:
            raise UnknownFieldError(name)
        return handle

    def _typed(self, name: str, kind: Type[H]) -> H:
        handle = self.get(name)
        if not isinstance(handle, kind):
            raise TypeError(f"{name} is a {handle.type.value} field, not {kind.__name__}")
        return handle

    def text(self, name: str) -> TextField:
        return self._typed(name, TextField)

    def select(self, name: str) -> SelectField:
        return self._typed(name, SelectField)

    def choice(self, name: str) -> ChoiceGroup:
        return self._typed(name, ChoiceGroup)

    def required_fields(self) -> List[FieldHandle]:
        return [f for f in self if f.required and f.visible]

    def checkbox_groups(self) -> List[ChoiceGroup]:
        return [f for f in self if isinstance(f, ChoiceGroup) and not f.is_radio]

    def set_error_hook(self, hook: Optional[ErrorHook]) -> None:
        for handle in self:
            handle._error_hook = hook

    def reset(self) -> None:
        """Clear every value and decoration without firing change events."""
        for handle in self:
            handle.clear()
            handle.clear_decoration()
