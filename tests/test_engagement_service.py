import pytest
from bson import ObjectId

from videohub.errors import InvalidIdentifier, InvalidParameter, NotFound, Unauthorized
from videohub.services.view_projector import FeedTarget


class TestToggleLike:
    def test_like_then_unlike(self, engagement_service, seed, mongo_db):
        owner = seed.user("alice")
        viewer = seed.user("bob")
        video = seed.video(owner)

        assert engagement_service.toggle_like("video", str(video), str(viewer)) == {"isLiked": True}
        assert mongo_db["engagements"].count_documents({"subject_id": video, "subject_type": "video"}) == 1

        assert engagement_service.toggle_like("video", str(video), str(viewer)) == {"isLiked": False}
        assert mongo_db["engagements"].count_documents({"subject_id": video}) == 0

    def test_comment_and_tweet_likes_share_the_edge_collection(self, engagement_service, projector, seed):
        owner = seed.user("alice")
        viewer = seed.user("bob")
        video = seed.video(owner)
        comment = seed.comment(video, owner)
        tweet = seed.tweet(owner)

        engagement_service.toggle_like("comment", str(comment), str(viewer))
        engagement_service.toggle_like("tweet", str(tweet), str(viewer))

        comments = projector.project_feed(
            FeedTarget.COMMENT_BY_VIDEO, filters={"videoId": str(video)}, viewer_id=str(viewer)
        )
        tweets = projector.project_feed(
            FeedTarget.TWEET_BY_USER, filters={"userId": str(owner)}, viewer_id=str(viewer)
        )
        assert comments.docs[0]["isLiked"] is True
        assert tweets.docs[0]["isLiked"] is True

    def test_requires_viewer(self, engagement_service, seed):
        video = seed.video(seed.user("alice"))
        with pytest.raises(Unauthorized):
            engagement_service.toggle_like("video", str(video), None)

    def test_rejects_bad_input(self, engagement_service):
        with pytest.raises(InvalidParameter):
            engagement_service.toggle_like("playlist", str(ObjectId()), str(ObjectId()))
        with pytest.raises(InvalidIdentifier):
            engagement_service.toggle_like("video", "bad", str(ObjectId()))

    def test_missing_subject(self, engagement_service):
        with pytest.raises(NotFound):
            engagement_service.toggle_like("tweet", str(ObjectId()), str(ObjectId()))


class TestToggleSubscription:
    def test_subscribe_then_unsubscribe(self, engagement_service, projector, seed):
        channel = seed.user("alice")
        viewer = seed.user("bob")

        assert engagement_service.toggle_subscription(str(channel), str(viewer)) == {"isSubscribed": True}
        page = projector.project_feed(FeedTarget.SUBSCRIBER_LIST, filters={"channelId": str(channel)})
        assert [item["username"] for item in page.docs] == ["bob"]

        assert engagement_service.toggle_subscription(str(channel), str(viewer)) == {"isSubscribed": False}
        page = projector.project_feed(FeedTarget.SUBSCRIBER_LIST, filters={"channelId": str(channel)})
        assert page.docs == []
        assert page.totalPages == 1

    def test_cannot_subscribe_to_self(self, engagement_service, seed):
        me = seed.user("alice")
        with pytest.raises(InvalidParameter):
            engagement_service.toggle_subscription(str(me), str(me))

    def test_unknown_channel(self, engagement_service, seed):
        viewer = seed.user("bob")
        with pytest.raises(NotFound):
            engagement_service.toggle_subscription(str(ObjectId()), str(viewer))
