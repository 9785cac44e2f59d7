from __future__ import annotations

from typing import Optional


class SurveyFormError(Exception):
    """Base class for controller errors."""


class DefinitionError(SurveyFormError):
    """The survey definition is malformed (duplicate names, unknown rule targets)."""


class UnknownFieldError(SurveyFormError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown field: {self.name}"


class SubmissionError(SurveyFormError):
    """A submit attempt did not end in a confirmed insert."""

    user_message = "Submission failed"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.user_message)

    @property
    def display_message(self) -> str:
        return str(self)


class IncompleteSubmissionError(SubmissionError):
    """Server-mandated fields were empty after collection."""


class TransportError(SubmissionError):
    """The request never produced a usable HTTP response."""

    user_message = "Network error"


class MalformedResponseError(TransportError):
    """The server answered, but the body was not the expected JSON."""

    user_message = "Invalid response from server"


class ServerRejectedError(SubmissionError):
    """4xx: the server refused the payload; its message is shown verbatim."""

    def __init__(self, status_code: int, message: str, details: Optional[str] = None) -> None:
        super().__init__(message or f"Server error: {status_code}")
        self.status_code = status_code
        self.details = details


class ServerFailureError(SubmissionError):
    """5xx: the server could not store the response. Internal detail is never shown."""

    user_message = "The server could not save your response. Please try again later."

    def __init__(self, status_code: int) -> None:
        super().__init__(self.user_message)
        self.status_code = status_code
