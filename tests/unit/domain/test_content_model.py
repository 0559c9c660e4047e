"""Tests for src/domain/models/content.py and engagement.py"""

from uuid import uuid4

from domain.models import ContentKind, ContentRef, Engagement, EngagementType, OwnedContent, Video
from domain.models.content import DELETED_CHANNEL_MARKER, tombstone_marker


class TestContentRef:
    def test_constructors_set_kind(self):
        cid = uuid4()
        assert ContentRef.video(cid) == ContentRef(ContentKind.VIDEO, cid)
        assert ContentRef.comment(cid).kind is ContentKind.COMMENT
        assert ContentRef.tweet(cid).kind is ContentKind.TWEET
        assert ContentRef.playlist(cid).kind is ContentKind.PLAYLIST

    def test_same_id_different_kind_differs(self):
        cid = uuid4()
        assert ContentRef.video(cid) != ContentRef.comment(cid)
        assert len({ContentRef.video(cid), ContentRef.comment(cid)}) == 2


class TestOwnedContent:
    def test_refs_cover_every_collection(self):
        owned = OwnedContent(
            video_ids=(uuid4(), uuid4()),
            comment_ids=(uuid4(),),
            tweet_ids=(uuid4(),),
            playlist_ids=(uuid4(),),
        )
        kinds = [ref.kind for ref in owned.refs()]
        assert kinds == [
            ContentKind.VIDEO,
            ContentKind.VIDEO,
            ContentKind.COMMENT,
            ContentKind.TWEET,
            ContentKind.PLAYLIST,
        ]

    def test_empty(self):
        assert OwnedContent().refs() == []


class TestTombstoneMarker:
    def test_marker_prefix(self):
        assert tombstone_marker().startswith(DELETED_CHANNEL_MARKER + " ")

    def test_markers_are_unique(self):
        assert len({tombstone_marker() for _ in range(50)}) == 50


class TestDefaults:
    def test_video_defaults(self):
        video = Video()
        assert video.is_published is True
        assert video.views == 0
        assert video.owner_id is None

    def test_engagement_defaults_to_like(self):
        assert Engagement().engagement_type is EngagementType.LIKE
