import logging

from ..errors import InvalidParameter, NotFound, Unauthorized
from .stores import EngagementStore, IdentityStore, TargetStore
from .view_projector import parse_object_id, parse_viewer

logger = logging.getLogger("uvicorn")

# subject_type -> collection holding the liked documents
LIKEABLE = {"video": "videos", "comment": "comments", "tweet": "tweets"}


class EngagementService:
    """Like and subscription toggles, all written to the one engagement edge collection."""

    def __init__(self, database):
        self.identities = IdentityStore(database["users"])
        self.engagements = EngagementStore(database["engagements"])
        self.targets = {name: TargetStore(database[name]) for name in LIKEABLE.values()}

    def _require_viewer(self, viewer_id):
        viewer = parse_viewer(viewer_id)
        if viewer is None:
            raise Unauthorized("Sign in to continue")
        return viewer

    def toggle_like(self, subject_type, subject_id, viewer_id):
        if subject_type not in LIKEABLE:
            raise InvalidParameter(f"Cannot like a {subject_type}")
        subject = parse_object_id(subject_id, f"{subject_type} id")
        viewer = self._require_viewer(viewer_id)

        if not self.targets[LIKEABLE[subject_type]].exists(subject):
            raise NotFound(f"{subject_type.capitalize()} not found")

        liked = self.engagements.toggle_edge(subject_type, subject, viewer)
        logger.info(f"User {viewer} {'liked' if liked else 'unliked'} {subject_type} {subject}")
        return {"isLiked": liked}

    def toggle_subscription(self, channel_id, viewer_id):
        channel = parse_object_id(channel_id, "channelId")
        viewer = self._require_viewer(viewer_id)
        if channel == viewer:
            raise InvalidParameter("You cannot subscribe to your own channel")

        if not self.identities.exists(channel):
            raise NotFound("Channel not found")

        subscribed = self.engagements.toggle_edge("channel", channel, viewer)
        logger.info(f"User {viewer} {'subscribed to' if subscribed else 'unsubscribed from'} {channel}")
        return {"isSubscribed": subscribed}
