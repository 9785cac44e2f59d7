from __future__ import annotations

from typing import Any, List, Optional, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


def _as_list(v: Any) -> List[Any]:
    """Missing/empty -> [], scalar -> [scalar], list passes through."""
    if isinstance(v, list):
        return v
    if isinstance(v, tuple):
        return list(v)
    if not v:
        return []
    return [v]


class SurveyRow(BaseModel):
    """
    One row of `survey_responses`.

    The column set is fixed: every column is always present in the dumped row
    (absent scalars as None, absent multi-valued columns as []), and keys that
    are not columns are dropped.
    """

    model_config = ConfigDict(extra="ignore")

    # About you
    age: Any = None
    gender: Any = None
    province: Any = None
    diaspora_country: Any = None
    diaspora_city: Any = None
    diaspora_engagement: Any = None

    # Education
    education_level: Any = None
    field_of_study: Any = None
    university: Any = None
    year_started_tech: Any = None
    learned_coding: List[Any] = Field(default_factory=list)

    # Employment
    employment_status: Any = None
    job_title: Any = None
    job_title_other: Any = None
    years_experience: Any = None
    years_current_employer: Any = None
    company_type: Any = None
    industry: Any = None
    company_hq: Any = None

    # Compensation
    annual_compensation: Any = None
    monthly_salary: Any = None
    payment_method: List[Any] = Field(default_factory=list)
    benefits: List[Any] = Field(default_factory=list)
    compensation_satisfaction: Any = None

    # Work environment
    work_arrangement: Any = None
    remote_days: Any = None
    work_schedule: Any = None
    team_size: Any = None
    management_structure: Any = None
    development_methodology: Any = None
    meeting_frequency: Any = None

    # Technologies
    languages: List[Any] = Field(default_factory=list)
    frameworks: List[Any] = Field(default_factory=list)
    databases: List[Any] = Field(default_factory=list)
    cloud: List[Any] = Field(default_factory=list)
    dev_tools: List[Any] = Field(default_factory=list)
    version_control: List[Any] = Field(default_factory=list)
    ai_tools: List[Any] = Field(default_factory=list)

    # Learning & community
    stay_updated: List[Any] = Field(default_factory=list)
    learning_hours: Any = None
    learning_resources: List[Any] = Field(default_factory=list)
    has_certifications: Any = None
    certifications: List[Any] = Field(default_factory=list)
    is_mentoring: Any = None
    has_mentor: Any = None
    open_source_contribution: Any = None

    challenges: List[Any] = Field(default_factory=list)

    user_agent: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_list(cls, v: Any, info: ValidationInfo) -> Any:
        # Multi-valued columns are exactly the ones annotated as lists.
        if get_origin(cls.model_fields[info.field_name].annotation) is list:
            return _as_list(v)
        return v

    @field_validator("user_agent", mode="before")
    @classmethod
    def _coerce_user_agent(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return str(v)


class SurveyAck(BaseModel):
    success: bool = True


class ErrorBody(BaseModel):
    error: str
    details: Optional[str] = None
