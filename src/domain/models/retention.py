"""
Retention policy value objects for channel deletion.

A channel deletion applies one :class:`RetentionAction` per content class.
Callers may override any subset of the defaults; every supplied value is
validated before a unit of work is opened.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from domain.exceptions import InvalidDeletionReasonError, InvalidRetentionPolicyError


class RetentionAction(str, enum.Enum):
    DELETED = "deleted"
    ARCHIVED = "archived"
    ANONYMIZED = "anonymized"


class ContentClass(str, enum.Enum):
    VIDEOS = "videos"
    COMMENTS = "comments"
    ANALYTICS = "analytics"
    WATCH_HISTORY = "watch_history"


class DeletionReason(str, enum.Enum):
    USER_REQUEST = "user_request"
    POLICY_VIOLATION = "policy_violation"
    COPYRIGHT = "copyright"
    SPAM = "spam"
    OTHER = "other"


_ALLOWED_ACTIONS = tuple(a.value for a in RetentionAction)

# Accepted spellings of the content-class keys in caller-supplied maps.
_KEY_ALIASES: dict[str, ContentClass] = {
    "videos": ContentClass.VIDEOS,
    "comments": ContentClass.COMMENTS,
    "analytics": ContentClass.ANALYTICS,
    "watch_history": ContentClass.WATCH_HISTORY,
    "watchHistory": ContentClass.WATCH_HISTORY,
}


def parse_retention_action(content_class: str, value: Any) -> RetentionAction:
    """Coerce *value* to a :class:`RetentionAction` or raise a validation error."""
    if isinstance(value, RetentionAction):
        return value
    try:
        return RetentionAction(value)
    except ValueError:
        raise InvalidRetentionPolicyError(content_class, value, _ALLOWED_ACTIONS) from None


def parse_deletion_reason(value: Any) -> DeletionReason:
    if value is None:
        return DeletionReason.USER_REQUEST
    if isinstance(value, DeletionReason):
        return value
    try:
        return DeletionReason(value)
    except ValueError:
        raise InvalidDeletionReasonError(value, [r.value for r in DeletionReason]) from None


@dataclass(frozen=True)
class DataRetentionPolicy:
    """How each content class is treated when its owning channel is deleted."""

    videos: RetentionAction = RetentionAction.ARCHIVED
    comments: RetentionAction = RetentionAction.ANONYMIZED
    analytics: RetentionAction = RetentionAction.ARCHIVED
    watch_history: RetentionAction = RetentionAction.ANONYMIZED

    def action_for(self, content_class: ContentClass) -> RetentionAction:
        mapping = {
            ContentClass.VIDEOS: self.videos,
            ContentClass.COMMENTS: self.comments,
            ContentClass.ANALYTICS: self.analytics,
            ContentClass.WATCH_HISTORY: self.watch_history,
        }
        return mapping[content_class]

    def to_dict(self) -> dict[str, str]:
        return {c.value: self.action_for(c).value for c in ContentClass}

    @classmethod
    def from_options(
        cls,
        data_retention: Optional[Mapping[str, Any]] = None,
        watch_history_retention: Any = None,
    ) -> DataRetentionPolicy:
        """Resolve caller options over the defaults.

        Explicit options override per-field defaults. ``watch_history_retention``
        wins over a ``watch_history`` key inside *data_retention*. Unknown
        content-class keys are rejected.
        """

        resolved: dict[str, RetentionAction] = {}
        for key, value in (data_retention or {}).items():
            content_class = _KEY_ALIASES.get(key)
            if content_class is None:
                raise InvalidRetentionPolicyError(key, value, _ALLOWED_ACTIONS)
            resolved[content_class.value] = parse_retention_action(key, value)

        if watch_history_retention is not None:
            resolved[ContentClass.WATCH_HISTORY.value] = parse_retention_action(
                ContentClass.WATCH_HISTORY.value, watch_history_retention
            )

        return cls(**resolved)


DEFAULT_RETENTION_POLICY = DataRetentionPolicy()
