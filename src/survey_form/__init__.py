"""
Form controller for the Zimbabwe Developer Survey.

- Runtime package: `src/survey_form/`
- Ingestion endpoint (serverless): `api/index.py`

The controller owns field state, validation, autosave and submission; the
endpoint accepts one normalized row per request.
"""

from survey_form.config import FormConfig
from survey_form.controller import FormController, SubmitOutcome, build_controller

__all__ = ["FormConfig", "FormController", "SubmitOutcome", "build_controller"]
