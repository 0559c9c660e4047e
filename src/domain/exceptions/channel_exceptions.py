from __future__ import annotations

from typing import Iterable

_PROBLEM_BASE = "https://api.videohub.example/problems"


class DomainException(Exception):
    """Base class for all domain-layer exceptions.

    Carries HTTP-mapping metadata so the presentation layer can produce
    RFC 9457 Problem Details without knowing exception internals.
    """

    def __init__(
        self,
        detail: str = "",
        *,
        title: str = "Domain Error",
        status_code: int = 400,
        error_type: str = "about:blank",
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.title = title
        self.status_code = status_code
        self.error_type = error_type


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class ChannelNotFoundError(DomainException):
    def __init__(self, user_id: str = "") -> None:
        self.user_id = user_id
        super().__init__(
            detail=f"User not found: {user_id}",
            title="Channel Not Found",
            status_code=404,
            error_type=f"{_PROBLEM_BASE}/channel-not-found",
        )


class TombstoneNotFoundError(DomainException):
    def __init__(self, tombstone_id: str = "") -> None:
        self.tombstone_id = tombstone_id
        super().__init__(
            detail=f"Deleted channel not found: {tombstone_id}",
            title="Deleted Channel Not Found",
            status_code=404,
            error_type=f"{_PROBLEM_BASE}/deleted-channel-not-found",
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(DomainException):
    def __init__(self, detail: str = "", *, title: str = "Validation Error") -> None:
        super().__init__(
            detail=detail,
            title=title,
            status_code=400,
            error_type=f"{_PROBLEM_BASE}/validation-error",
        )


class InvalidRetentionPolicyError(ValidationError):
    def __init__(self, content_class: str = "", value: object = None, allowed: Iterable[str] = ()) -> None:
        self.content_class = content_class
        self.value = value
        self.allowed = tuple(allowed)
        super().__init__(
            detail=(
                f"Invalid data retention policy for '{content_class}': {value!r} "
                f"(allowed: {', '.join(self.allowed)})"
            ),
            title="Invalid Retention Policy",
        )


class InvalidDeletionReasonError(ValidationError):
    def __init__(self, reason: object = None, allowed: Iterable[str] = ()) -> None:
        self.reason = reason
        super().__init__(
            detail=f"Invalid deletion reason: {reason!r} (allowed: {', '.join(allowed)})",
            title="Invalid Deletion Reason",
        )


class ChannelNotRecoverableError(ValidationError):
    def __init__(self, tombstone_id: str = "", reason: str = "") -> None:
        self.tombstone_id = tombstone_id
        super().__init__(detail=reason, title="Channel Not Recoverable")


class RecoveryParameterError(ValidationError):
    def __init__(self, parameter: str = "") -> None:
        self.parameter = parameter
        super().__init__(
            detail=f"'{parameter}' is required for recovery",
            title="Missing Recovery Parameter",
        )


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


class ChannelAlreadyDeletedError(DomainException):
    def __init__(self, user_id: str = "") -> None:
        self.user_id = user_id
        super().__init__(
            detail=f"A recoverable deletion record already exists for user {user_id}",
            title="Channel Already Deleted",
            status_code=409,
            error_type=f"{_PROBLEM_BASE}/channel-already-deleted",
        )


class UserAlreadyExistsError(DomainException):
    def __init__(self, user_id: str = "", *, field: str = "id", value: str = "") -> None:
        self.user_id = user_id
        self.field = field
        super().__init__(
            detail=(
                f"User already exists: {user_id}"
                if field == "id"
                else f"A user with {field} {value!r} already exists"
            ),
            title="User Conflict",
            status_code=409,
            error_type=f"{_PROBLEM_BASE}/user-conflict",
        )


class TransactionConflictError(DomainException):
    """The storage engine aborted the transaction; safe for the caller to retry."""

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        super().__init__(
            detail=f"Transaction aborted by a concurrent modification: {reason}",
            title="Transaction Conflict",
            status_code=409,
            error_type=f"{_PROBLEM_BASE}/transaction-conflict",
        )


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


class ChannelDeletionFailedError(DomainException):
    def __init__(self, user_id: str = "", reason: str = "") -> None:
        self.user_id = user_id
        self.reason = reason
        super().__init__(
            detail=f"Channel deletion failed: {reason}",
            title="Channel Deletion Failed",
            status_code=500,
            error_type=f"{_PROBLEM_BASE}/channel-deletion-failed",
        )


class ChannelRecoveryFailedError(DomainException):
    def __init__(self, tombstone_id: str = "", reason: str = "") -> None:
        self.tombstone_id = tombstone_id
        self.reason = reason
        super().__init__(
            detail=f"Channel recovery failed: {reason}",
            title="Channel Recovery Failed",
            status_code=500,
            error_type=f"{_PROBLEM_BASE}/channel-recovery-failed",
        )
