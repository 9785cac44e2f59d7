from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from survey_form.fields import FieldHandle
from survey_form.validation import ValidationIssue

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    NoticeLevel.INFO: logging.INFO,
    NoticeLevel.SUCCESS: logging.INFO,
    NoticeLevel.WARNING: logging.WARNING,
    NoticeLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Notice:
    message: str
    level: NoticeLevel = NoticeLevel.INFO


@dataclass
class FormView:
    """Everything the user can see besides the fields themselves."""

    notices: List[Notice] = field(default_factory=list)
    busy: bool = False
    success_visible: bool = False
    error_text: Optional[str] = None
    error_summary: Optional[List[ValidationIssue]] = None
    focused: Optional[str] = None

    def notify(self, message: str, level: NoticeLevel = NoticeLevel.INFO) -> Notice:
        notice = Notice(message=message, level=NoticeLevel(level))
        self.notices.append(notice)
        logger.log(_LOG_LEVELS[notice.level], "notice[%s]: %s", notice.level.value, message)
        return notice

    def notices_at(self, level: NoticeLevel) -> List[Notice]:
        return [n for n in self.notices if n.level == level]

    def show_loading(self, show: bool) -> None:
        self.busy = show

    def show_success(self) -> None:
        self.success_visible = True
        self.error_text = None

    def show_error(self, message: str) -> None:
        self.error_text = message
        self.success_visible = False

    def show_error_summary(self, errors: Sequence[ValidationIssue]) -> None:
        self.error_summary = list(errors)

    def dismiss_error_summary(self) -> None:
        self.error_summary = None

    def focus(self, handle: Optional[FieldHandle]) -> None:
        self.focused = handle.name if handle is not None else None
