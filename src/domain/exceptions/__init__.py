from domain.exceptions.channel_exceptions import (
    ChannelAlreadyDeletedError,
    ChannelDeletionFailedError,
    ChannelNotFoundError,
    ChannelNotRecoverableError,
    ChannelRecoveryFailedError,
    DomainException,
    InvalidDeletionReasonError,
    InvalidRetentionPolicyError,
    RecoveryParameterError,
    TombstoneNotFoundError,
    TransactionConflictError,
    UserAlreadyExistsError,
    ValidationError,
)

__all__ = [
    "ChannelAlreadyDeletedError",
    "ChannelDeletionFailedError",
    "ChannelNotFoundError",
    "ChannelNotRecoverableError",
    "ChannelRecoveryFailedError",
    "DomainException",
    "InvalidDeletionReasonError",
    "InvalidRetentionPolicyError",
    "RecoveryParameterError",
    "TombstoneNotFoundError",
    "TransactionConflictError",
    "UserAlreadyExistsError",
    "ValidationError",
]
