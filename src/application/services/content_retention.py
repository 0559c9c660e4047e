"""Apply a channel's retention policy to the content it owned."""

from __future__ import annotations

import logging
from uuid import UUID

from application.ports import TransactionContext
from domain.models import OwnedContent, RetentionAction

logger = logging.getLogger(__name__)


class ContentRetentionProcessor:
    """Per-collection retention handlers.

    Every handler matches on ``owner_id``, so running one again after it has
    already cleared ownership is a no-op.
    """

    async def handle_videos(
        self, uow: TransactionContext, owner_id: UUID, action: RetentionAction
    ) -> int:
        store = uow.videos
        if action is RetentionAction.DELETED:
            affected = await store.delete_by_owner(owner_id)
        elif action is RetentionAction.ARCHIVED:
            affected = await store.archive_by_owner(owner_id)
        else:
            affected = await store.anonymize_by_owner(owner_id)
        logger.info("Videos of %s %s: %d", owner_id, action.value, affected)
        return affected

    async def handle_comments(
        self, uow: TransactionContext, owner_id: UUID, action: RetentionAction
    ) -> int:
        store = uow.comments
        if action is RetentionAction.DELETED:
            affected = await store.delete_by_owner(owner_id)
        elif action is RetentionAction.ARCHIVED:
            affected = await store.archive_by_owner(owner_id)
        else:
            affected = await store.anonymize_by_owner(owner_id)
        logger.info("Comments of %s %s: %d", owner_id, action.value, affected)
        return affected

    # Playlists and tweets have no retention choice; they go with the channel.

    async def handle_playlists(self, uow: TransactionContext, owner_id: UUID) -> int:
        affected = await uow.playlists.delete_by_owner(owner_id)
        logger.info("Playlists of %s deleted: %d", owner_id, affected)
        return affected

    async def handle_tweets(self, uow: TransactionContext, owner_id: UUID) -> int:
        affected = await uow.tweets.delete_by_owner(owner_id)
        logger.info("Tweets of %s deleted: %d", owner_id, affected)
        return affected

    async def handle_engagements(
        self, uow: TransactionContext, user_id: UUID, owned: OwnedContent
    ) -> int:
        """Remove reactions on the channel's content and the user's own reactions.

        *owned* must have been captured before any handler above cleared the
        ownership references.
        """

        removed = 0
        refs = owned.refs()
        if refs:
            removed += await uow.engagements.delete_for_content(refs)
        removed += await uow.engagements.delete_by_user(user_id)
        logger.info("Engagements removed for channel %s: %d", user_id, removed)
        return removed
