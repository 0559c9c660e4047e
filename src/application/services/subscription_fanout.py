"""Cancel every active subscription to a deleted channel, in bounded batches."""

from __future__ import annotations

import logging
from uuid import UUID

from application.ports import TransactionContext

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10_000


class SubscriptionFanoutProcessor:
    """Batch-cancels subscriptions pointing at a channel.

    Each round cancels at most ``batch_size`` edges and then recomputes
    ``subscriber_count`` for exactly the subscribers cancelled in that round,
    using one aggregate count and one bulk counter write per round. A
    subscriber holds at most one edge per channel, so its recomputed count
    is final as soon as its edge has been cancelled.
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def handle_subscriptions(self, uow: TransactionContext, channel_id: UUID) -> int:
        processed = 0
        rounds = 0

        while True:
            subscriber_ids = await uow.subscriptions.cancel_active_batch(
                channel_id, self._batch_size
            )
            rounds += 1
            if subscriber_ids:
                await self._recompute_subscriber_counts(uow, subscriber_ids)
                processed += len(subscriber_ids)
                logger.debug(
                    "Cancelled %d subscriptions to channel %s (round %d)",
                    processed,
                    channel_id,
                    rounds,
                )
            if len(subscriber_ids) < self._batch_size:
                break

        logger.info("Cancelled %d subscriptions to channel %s", processed, channel_id)
        return processed

    async def _recompute_subscriber_counts(
        self, uow: TransactionContext, subscriber_ids: list[UUID]
    ) -> None:
        counts = await uow.subscriptions.count_active_by_subscriber(subscriber_ids)
        await uow.users.set_subscriber_counts(
            {sid: counts.get(sid, 0) for sid in subscriber_ids}
        )
