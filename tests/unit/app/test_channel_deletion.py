"""Unit tests for ChannelDeletionOrchestrator over the in-memory unit of work."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from domain.exceptions import (
    ChannelAlreadyDeletedError,
    ChannelDeletionFailedError,
    ChannelNotFoundError,
    InvalidDeletionReasonError,
    InvalidRetentionPolicyError,
)
from domain.models import (
    ChannelStats,
    ChannelTombstone,
    DeletionReason,
    RetentionAction,
    SubscriptionStatus,
)
from domain.models.content import ANONYMOUS_OWNER_NAME, DELETED_CHANNEL_MARKER
from domain.models.watch_history import CHANNEL_DELETED_REASON
from infrastructure.adapters import InMemoryTombstoneStore, InMemoryUserDirectory


@pytest.mark.asyncio
class TestDeleteChannel:

    async def test_stats_snapshot_matches_pre_deletion_state(self, orchestrator, channel, db):
        result = await orchestrator.delete_channel(channel.owner.id)

        assert result.success is True
        assert result.stats == ChannelStats(
            subscriber_count=3,
            video_count=5,
            total_views=100,
            total_likes=3,
            total_comments=2,
        )
        tombstone = db.tombstones[result.tombstone_id]
        assert tombstone.stats == result.stats

    async def test_tombstone_carries_identity_reason_and_deadline(
        self, orchestrator, channel, db, clock
    ):
        admin_id = uuid4()
        result = await orchestrator.delete_channel(
            channel.owner.id, "policy_violation", admin_id
        )

        tombstone = db.tombstones[result.tombstone_id]
        assert tombstone.original_user_id == channel.owner.id
        assert tombstone.username == "alice"
        assert tombstone.full_name == "Alice Channel"
        assert tombstone.email == "alice@example.com"
        assert tombstone.deletion_reason is DeletionReason.POLICY_VIOLATION
        assert tombstone.deleted_by == admin_id
        assert tombstone.deleted_at == clock.now
        assert tombstone.recovery_deadline == clock.now + timedelta(days=30)
        assert tombstone.is_recoverable is True

    async def test_tombstone_records_resolved_policy(self, orchestrator, channel, db):
        result = await orchestrator.delete_channel(
            channel.owner.id,
            data_retention={"videos": "deleted"},
            watch_history_retention="archived",
        )

        assert db.tombstones[result.tombstone_id].data_retention.to_dict() == {
            "videos": "deleted",
            "comments": "anonymized",
            "analytics": "archived",
            "watch_history": "archived",
        }

    async def test_reason_defaults_to_user_request(self, orchestrator, channel, db):
        result = await orchestrator.delete_channel(channel.owner.id, None)
        assert db.tombstones[result.tombstone_id].deletion_reason is DeletionReason.USER_REQUEST

    async def test_user_record_is_removed(self, orchestrator, channel, db):
        await orchestrator.delete_channel(channel.owner.id)
        assert channel.owner.id not in db.users

    async def test_second_deletion_reports_not_found(self, orchestrator, channel, db):
        await orchestrator.delete_channel(channel.owner.id)

        with pytest.raises(ChannelNotFoundError) as exc_info:
            await orchestrator.delete_channel(channel.owner.id)

        assert exc_info.value.status_code == 404
        assert len(db.tombstones) == 1

    async def test_unknown_user_creates_nothing(self, orchestrator, channel, db):
        with pytest.raises(ChannelNotFoundError):
            await orchestrator.delete_channel(uuid4())
        assert db.tombstones == {}

    async def test_live_tombstone_for_same_user_conflicts(self, orchestrator, channel, db):
        existing = ChannelTombstone(original_user_id=channel.owner.id, username="alice")
        db.tombstones[existing.id] = existing

        with pytest.raises(ChannelAlreadyDeletedError):
            await orchestrator.delete_channel(channel.owner.id)

        assert channel.owner.id in db.users
        assert list(db.tombstones) == [existing.id]


@pytest.mark.asyncio
class TestSubscriptionsOnDeletion:

    async def test_all_edges_to_channel_cancelled_not_deleted(self, orchestrator, channel, db):
        edges_before = len(db.subscriptions)
        await orchestrator.delete_channel(channel.owner.id)

        assert len(db.subscriptions) == edges_before
        to_channel = [s for s in db.subscriptions.values() if s.channel_id == channel.owner.id]
        assert all(s.status is SubscriptionStatus.CANCELLED for s in to_channel)

    async def test_subscriber_counts_recomputed(self, orchestrator, channel, db):
        await orchestrator.delete_channel(channel.owner.id)

        viewer0, viewer1, viewer2 = channel.subscribers
        assert db.users[viewer0.id].subscriber_count == 1
        assert db.users[viewer1.id].subscriber_count == 0
        assert db.users[viewer2.id].subscriber_count == 0

    async def test_edges_to_other_channels_untouched(self, orchestrator, channel, db):
        await orchestrator.delete_channel(channel.owner.id)

        to_bob = [s for s in db.subscriptions.values() if s.channel_id == channel.other.id]
        assert [s.status for s in to_bob] == [SubscriptionStatus.ACTIVE]
        assert db.users[channel.other.id].subscriber_count == 1


def _video_check(action: RetentionAction):
    def check(db, channel):
        ids = channel.owner_video_ids
        if action is RetentionAction.DELETED:
            assert not any(vid in db.videos for vid in ids)
            return
        videos = [db.videos[vid] for vid in ids]
        assert all(v.owner_id is None for v in videos)
        if action is RetentionAction.ARCHIVED:
            assert all(not v.is_published for v in videos)
            assert all(v.title.startswith(DELETED_CHANNEL_MARKER + " ") for v in videos)
            assert len({v.title for v in videos}) == len(videos)
        else:
            assert all(v.owner_name == ANONYMOUS_OWNER_NAME for v in videos)
            assert [v.title for v in videos[:5]] == [f"Video {i}" for i in range(5)]
            assert all(v.is_published for v in videos[:5])

    return check


def _comment_check(action: RetentionAction):
    def check(db, channel):
        ids = channel.comment_ids
        if action is RetentionAction.DELETED:
            assert not any(cid in db.comments for cid in ids)
            return
        comments = [db.comments[cid] for cid in ids]
        assert all(c.owner_id is None for c in comments)
        if action is RetentionAction.ARCHIVED:
            assert all(c.is_hidden for c in comments)
            assert all(c.content.startswith(DELETED_CHANNEL_MARKER + " ") for c in comments)
            assert len({c.content for c in comments}) == len(comments)
        else:
            assert all(c.owner_name == ANONYMOUS_OWNER_NAME for c in comments)
            assert [c.content for c in comments] == ["nice 0", "nice 1"]
            assert not any(c.is_hidden for c in comments)

    return check


@pytest.mark.asyncio
class TestContentRetention:

    @pytest.mark.parametrize("action", list(RetentionAction))
    async def test_video_policy(self, orchestrator, channel, db, action):
        await orchestrator.delete_channel(
            channel.owner.id, data_retention={"videos": action.value}
        )
        _video_check(action)(db, channel)
        assert db.videos[channel.other_video_id].owner_id == channel.other.id

    @pytest.mark.parametrize("action", list(RetentionAction))
    async def test_comment_policy(self, orchestrator, channel, db, action):
        await orchestrator.delete_channel(
            channel.owner.id, data_retention={"comments": action.value}
        )
        _comment_check(action)(db, channel)
        assert db.comments[channel.other_comment_id].content == "great"

    async def test_playlists_and_tweets_always_deleted(self, orchestrator, channel, db):
        await orchestrator.delete_channel(
            channel.owner.id, data_retention={"videos": "anonymized", "comments": "archived"}
        )

        assert channel.playlist_id not in db.playlists
        assert not any(tid in db.tweets for tid in channel.tweet_ids)
        assert channel.other_playlist_id in db.playlists
        assert channel.other_tweet_id in db.tweets

    async def test_engagements_on_channel_content_and_by_owner_removed(
        self, orchestrator, channel, db
    ):
        await orchestrator.delete_channel(channel.owner.id)

        assert list(db.engagements) == [channel.surviving_engagement_id]

    async def test_engagements_removed_even_when_content_archived(
        self, orchestrator, channel, db
    ):
        await orchestrator.delete_channel(
            channel.owner.id, data_retention={"videos": "archived", "comments": "archived"}
        )
        assert list(db.engagements) == [channel.surviving_engagement_id]


@pytest.mark.asyncio
class TestWatchHistoryRetentionOnDeletion:

    async def test_default_policy_anonymizes_both_axes(self, orchestrator, channel, db):
        await orchestrator.delete_channel(channel.owner.id)

        for rid in channel.viewer_history_ids:
            record = db.watch_history[rid]
            assert record.video_id is None
            assert record.user_id == channel.subscribers[0].id
            assert record.metadata.deleted_channel is True
            assert record.metadata.original_video_id is None
            assert record.archived is False

        owned = db.watch_history[channel.owner_history_id]
        assert owned.user_id is None
        assert owned.session_id is None
        assert owned.device.value == "unknown"
        assert owned.metadata.deleted_channel is True
        assert owned.metadata.original_user_id is None

    async def test_deleted_policy_removes_both_axes(self, orchestrator, channel, db):
        await orchestrator.delete_channel(channel.owner.id, watch_history_retention="deleted")

        assert list(db.watch_history) == [channel.unrelated_history_id]

    async def test_archived_policy_keeps_original_ids(self, orchestrator, channel, db, clock):
        result = await orchestrator.delete_channel(
            channel.owner.id, watch_history_retention="archived"
        )

        for rid, vid in zip(channel.viewer_history_ids, channel.published_video_ids):
            record = db.watch_history[rid]
            assert record.archived is True
            assert record.archived_at == clock.now
            assert record.archived_reason == CHANNEL_DELETED_REASON
            assert record.video_id is None
            assert record.metadata.original_video_id == vid
            assert record.metadata.tombstone_id == result.tombstone_id

        owned = db.watch_history[channel.owner_history_id]
        assert owned.user_id is None
        assert owned.metadata.original_user_id == channel.owner.id
        assert owned.metadata.tombstone_id == result.tombstone_id

    async def test_unrelated_history_untouched(self, orchestrator, channel, db):
        before = db.watch_history[channel.unrelated_history_id]
        snapshot = (before.user_id, before.video_id, before.archived, before.metadata)

        await orchestrator.delete_channel(channel.owner.id, watch_history_retention="archived")

        after = db.watch_history[channel.unrelated_history_id]
        assert (after.user_id, after.video_id, after.archived, after.metadata) == snapshot


@pytest.mark.asyncio
class TestValidationBeforeTransaction:

    async def test_invalid_reason_rejected(self, orchestrator, channel, db):
        before = db.snapshot()
        with pytest.raises(InvalidDeletionReasonError):
            await orchestrator.delete_channel(channel.owner.id, "because")
        assert db == before

    async def test_invalid_retention_value_rejected(self, orchestrator, channel, db):
        before = db.snapshot()
        with pytest.raises(InvalidRetentionPolicyError) as exc_info:
            await orchestrator.delete_channel(channel.owner.id, data_retention={"videos": "shred"})
        assert "deleted" in exc_info.value.detail
        assert db == before

    async def test_unknown_content_class_rejected(self, orchestrator, channel, db):
        with pytest.raises(InvalidRetentionPolicyError):
            await orchestrator.delete_channel(channel.owner.id, data_retention={"shorts": "deleted"})
        assert channel.owner.id in db.users

    async def test_invalid_watch_history_retention_rejected(self, orchestrator, channel, db):
        with pytest.raises(InvalidRetentionPolicyError):
            await orchestrator.delete_channel(channel.owner.id, watch_history_retention="forget")
        assert db.tombstones == {}

    async def test_validation_happens_before_user_lookup(self, orchestrator, db):
        with pytest.raises(InvalidDeletionReasonError):
            await orchestrator.delete_channel(uuid4(), "nope")


_PROCESSOR_STAGES = [
    ("subscription_processor", "handle_subscriptions"),
    ("content_processor", "handle_videos"),
    ("content_processor", "handle_comments"),
    ("content_processor", "handle_playlists"),
    ("content_processor", "handle_tweets"),
    ("content_processor", "handle_engagements"),
    ("watch_history_processor", "handle_watch_history"),
]


@pytest.mark.asyncio
class TestAtomicity:

    @pytest.mark.parametrize("fixture_name,method", _PROCESSOR_STAGES)
    async def test_failure_after_stage_rolls_everything_back(
        self, request, orchestrator, channel, db, monkeypatch, fixture_name, method
    ):
        processor = request.getfixturevalue(fixture_name)
        real = getattr(processor, method)

        async def fail_after(*args, **kwargs):
            await real(*args, **kwargs)
            raise RuntimeError(f"injected failure in {method}")

        monkeypatch.setattr(processor, method, fail_after)
        before = db.snapshot()

        with pytest.raises(ChannelDeletionFailedError) as exc_info:
            await orchestrator.delete_channel(
                channel.owner.id, watch_history_retention="archived"
            )

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.status_code == 500
        assert db == before

    async def test_failure_deleting_user_rolls_back(self, orchestrator, channel, db, monkeypatch):
        async def broken_delete(self, user_id):
            raise RuntimeError("user store unavailable")

        monkeypatch.setattr(InMemoryUserDirectory, "delete", broken_delete)
        before = db.snapshot()

        with pytest.raises(ChannelDeletionFailedError):
            await orchestrator.delete_channel(channel.owner.id)

        assert db == before

    async def test_failure_creating_tombstone_rolls_back(
        self, orchestrator, channel, db, monkeypatch
    ):
        async def broken_create(self, tombstone):
            raise ConnectionError("tombstone store unavailable")

        monkeypatch.setattr(InMemoryTombstoneStore, "create", broken_create)
        before = db.snapshot()

        with pytest.raises(ChannelDeletionFailedError) as exc_info:
            await orchestrator.delete_channel(channel.owner.id)

        assert "tombstone store unavailable" in exc_info.value.detail
        assert db == before

    async def test_service_usable_after_rollback(self, orchestrator, channel, db, monkeypatch):
        calls = {"n": 0}
        real = orchestrator._content.handle_videos

        async def flaky(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("transient")
            return await real(*args, **kwargs)

        monkeypatch.setattr(orchestrator._content, "handle_videos", flaky)

        with pytest.raises(ChannelDeletionFailedError):
            await orchestrator.delete_channel(channel.owner.id)
        result = await orchestrator.delete_channel(channel.owner.id)

        assert result.stats.subscriber_count == 3
        assert len(db.tombstones) == 1


@pytest.mark.asyncio
class TestDeletionQueries:

    async def test_deletion_stats_aggregate_tombstones(self, orchestrator, channel, db):
        await orchestrator.delete_channel(channel.owner.id)
        await orchestrator.delete_channel(channel.other.id)

        stats = await orchestrator.get_deletion_stats()

        assert stats.total_deleted_channels == 2
        assert stats.total_subscribers_affected == 3 + 1
        assert stats.total_videos_affected == 5 + 1
        assert stats.total_views_affected == 100 + 7

    async def test_deletion_stats_empty(self, orchestrator):
        stats = await orchestrator.get_deletion_stats()
        assert stats.total_deleted_channels == 0

    async def test_list_deleted_channels_newest_first(self, orchestrator, channel, clock):
        first = await orchestrator.delete_channel(channel.owner.id)
        clock.advance(timedelta(hours=1))
        second = await orchestrator.delete_channel(channel.other.id)

        page = await orchestrator.list_deleted_channels()

        assert [t.id for t in page.items] == [second.tombstone_id, first.tombstone_id]
        assert page.total == 2

    async def test_list_deleted_channels_filters_recoverable(
        self, orchestrator, recovery_service, channel
    ):
        first = await orchestrator.delete_channel(channel.owner.id)
        await orchestrator.delete_channel(channel.other.id)
        await recovery_service.recover_channel(first.tombstone_id, uuid4())

        recoverable = await orchestrator.list_deleted_channels(recoverable=True)
        consumed = await orchestrator.list_deleted_channels(recoverable=False)

        assert recoverable.total == 1
        assert [t.id for t in consumed.items] == [first.tombstone_id]
