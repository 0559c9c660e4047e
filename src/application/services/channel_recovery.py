"""Recovery of a deleted channel from its tombstone."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional
from uuid import UUID

from application.ports import UnitOfWork
from domain.exceptions import (
    ChannelNotRecoverableError,
    ChannelRecoveryFailedError,
    DomainException,
    RecoveryParameterError,
    TombstoneNotFoundError,
    UserAlreadyExistsError,
)
from domain.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecoveryResult:
    success: bool
    user_id: UUID
    tombstone_id: UUID


class ChannelRecoveryService:
    """Materialises a new user from a tombstone, at most once per tombstone.

    Recovery restores identity only. Counters start at zero and content that
    was archived or anonymized stays that way; watch history is re-linked by
    a separate, explicit call to the watch-history service.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._uow = uow
        self._clock = clock or (lambda: datetime.now(UTC))

    async def recover_channel(
        self, tombstone_id: UUID, new_user_id: Optional[UUID]
    ) -> RecoveryResult:
        if new_user_id is None:
            raise RecoveryParameterError("new_user_id")

        try:
            async with self._uow.transaction() as uow:
                tombstone = await uow.tombstones.get_by_id(tombstone_id, for_update=True)
                if tombstone is None:
                    raise TombstoneNotFoundError(tombstone_id=str(tombstone_id))

                now = self._clock()
                blocker = tombstone.recovery_blocker(now)
                if blocker is not None:
                    raise ChannelNotRecoverableError(str(tombstone_id), blocker)

                if await uow.users.get_by_id(new_user_id) is not None:
                    raise UserAlreadyExistsError(user_id=str(new_user_id))
                taken = await uow.users.find_identity_conflict(
                    tombstone.username, tombstone.email
                )
                if taken is not None:
                    raise UserAlreadyExistsError(
                        user_id=str(new_user_id), field=taken, value=getattr(tombstone, taken)
                    )

                await uow.users.create(
                    User(
                        id=new_user_id,
                        username=tombstone.username,
                        full_name=tombstone.full_name,
                        email=tombstone.email,
                        subscriber_count=0,
                        video_count=0,
                        total_views=0,
                        created_at=now,
                    )
                )
                await uow.tombstones.mark_consumed(
                    tombstone_id, at=now, recovered_user_id=new_user_id
                )
        except DomainException:
            raise
        except Exception as exc:
            logger.exception("Channel recovery failed for tombstone %s", tombstone_id)
            raise ChannelRecoveryFailedError(str(tombstone_id), str(exc)) from exc

        logger.info("Channel recovered: %s as %s", tombstone.username, new_user_id)
        return RecoveryResult(success=True, user_id=new_user_id, tombstone_id=tombstone_id)

    async def expire_overdue_tombstones(self, now: datetime | None = None) -> int:
        """Mark every recoverable tombstone past its deadline as non-recoverable."""
        async with self._uow.transaction() as uow:
            expired = await uow.tombstones.expire_overdue(now or self._clock())
        if expired:
            logger.info("Expired %d deleted-channel records", expired)
        return expired

    async def purge_expired_tombstones(self, now: datetime | None = None) -> int:
        """Remove non-recoverable tombstones whose recovery deadline has elapsed."""
        async with self._uow.transaction() as uow:
            purged = await uow.tombstones.purge_expired(now or self._clock())
        if purged:
            logger.info("Purged %d deleted-channel records", purged)
        return purged
