"""
Declarative survey definition.

A survey is a list of sections holding field specs, plus a table of
conditional rules. The JSON files under `surveys/` are the markup equivalent:
they are parsed once and turned into a `FieldRegistry` at start-up.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from survey_form.errors import DefinitionError


SURVEYS_DIR = Path(__file__).resolve().parent / "surveys"
DEFAULT_SURVEY = "zim_dev_2026"

PLACEHOLDER_VALUES = {"", "Select...", "Choose...", "--Select--"}


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    TEXTAREA = "textarea"
    NUMBER = "number"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"

    @property
    def is_choice_group(self) -> bool:
        return self in (FieldType.RADIO, FieldType.CHECKBOX)


class OptionSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str = ""
    disabled: bool = False

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"value": data, "label": data}
        if isinstance(data, dict) and not data.get("label"):
            return {**data, "label": str(data.get("value") or "")}
        return data


class FieldSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType
    label: str = ""
    required: bool = False
    required_message: Optional[str] = None
    options: List[OptionSpec] = Field(default_factory=list)
    collect: bool = Field(default=True, description="False for validation-only inputs (consent)")
    hidden: bool = Field(default=False, description="Initial visibility; rule dependents start hidden")

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, value: Any) -> List[Any]:
        """Plain strings are shorthand for `{value, label}` options."""
        if not isinstance(value, list):
            return []
        return list(value)

    @model_validator(mode="before")
    @classmethod
    def _select_placeholder(cls, data: Any) -> Any:
        # Selects always open on a disabled placeholder, as the markup does.
        if not isinstance(data, dict) or data.get("type") != FieldType.SELECT.value:
            return data
        options = list(data.get("options") or [])
        first = options[0] if options else None
        if isinstance(first, dict):
            first = first.get("value")
        elif isinstance(first, OptionSpec):
            first = first.value
        if first != "":
            options.insert(0, {"value": "", "label": "Select...", "disabled": True})
        return {**data, "options": options}

    @model_validator(mode="after")
    def _check_options(self) -> "FieldSpec":
        if self.type.is_choice_group and not self.options:
            raise ValueError(f"{self.type.value} field '{self.name}' has no options")
        return self

    @property
    def display_label(self) -> str:
        if self.label:
            return self.label.strip().rstrip("*").strip()
        return " ".join(w.capitalize() for w in self.name.split("_"))


class SectionSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    fields: List[FieldSpec] = Field(default_factory=list)


class RuleSpec(BaseModel):
    """
    One conditional row: when `trigger` matches, `fields` are shown and the
    subset listed in `required` becomes required.

    Matching:
    - `equals`: trigger value equals one of the listed values (case-insensitive)
    - `contains`: trigger value contains the substring
    """

    model_config = ConfigDict(frozen=True)

    trigger: str
    equals: List[str] = Field(default_factory=list)
    contains: Optional[str] = None
    fields: List[str]
    required: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check(self) -> "RuleSpec":
        if not self.equals and self.contains is None:
            raise ValueError(f"rule on '{self.trigger}' needs `equals` or `contains`")
        unknown = [n for n in self.required if n not in self.fields]
        if unknown:
            raise ValueError(f"rule on '{self.trigger}' requires fields it does not control: {unknown}")
        return self


class SurveyDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    version: str
    sections: List[SectionSpec]
    rules: List[RuleSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_names(self) -> "SurveyDefinition":
        seen = set()
        for spec in self.iter_fields():
            if spec.name in seen:
                raise ValueError(f"duplicate field name '{spec.name}'")
            seen.add(spec.name)
        for rule in self.rules:
            for name in [rule.trigger, *rule.fields]:
                if name not in seen:
                    raise ValueError(f"rule references unknown field '{name}'")
        return self

    def iter_fields(self) -> Iterator[FieldSpec]:
        for section in self.sections:
            yield from section.fields


def load_survey_definition(source: Union[str, Path, None] = None) -> SurveyDefinition:
    """
    Load a survey by bundled name (`zim_dev_2026`) or by path to a JSON file.
    """
    if source is None:
        source = DEFAULT_SURVEY
    path = Path(source)
    if not path.suffix:
        path = SURVEYS_DIR / f"{source}.json"
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise DefinitionError(f"Cannot read survey definition {path}: {e}") from e
    try:
        return SurveyDefinition.model_validate(raw)
    except ValueError as e:
        raise DefinitionError(f"Invalid survey definition {path}: {e}") from e
