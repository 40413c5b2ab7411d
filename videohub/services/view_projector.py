"""
Relative view projector.

Turns raw video, comment, tweet and subscription documents into paginated,
enriched projections for one viewer: owner summary, engagement counts and the
viewer-relative isLiked / isSubscribed flags.

A feed request runs through FEED_STEPS in order. Every step reads and writes a
FeedContext, so each can be exercised on its own. Nothing here is cached
between calls; the viewer is always passed in explicitly.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from bson import ObjectId

from ..config import settings
from ..errors import InvalidIdentifier, InvalidParameter, NotFound, Unauthorized
from ..responses import Page
from .stores import EngagementStore, IdentityStore, TargetStore

logger = logging.getLogger("uvicorn")

MAX_SKIP = 2 ** 63 - 1


class FeedTarget(str, Enum):
    VIDEO = "video"
    COMMENT_BY_VIDEO = "comment-by-video"
    TWEET_BY_USER = "tweet-by-user"
    SUBSCRIBER_LIST = "subscriber-list"


# --- Pure helpers ---

def parse_object_id(value, name="id"):
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise InvalidIdentifier(f"Invalid {name}")
    return ObjectId(value)


def parse_viewer(viewer_id):
    """Anonymous viewers are None; a supplied viewer id must be well formed."""
    if viewer_id is None or viewer_id == "":
        return None
    return parse_object_id(viewer_id, "viewer id")


def coerce_positive_int(value, default):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def is_actor_present(edges, viewer_id):
    if viewer_id is None:
        return False
    return any(edge.get("actor_id") == viewer_id for edge in edges)


# --- Item shapes ---

def _url(doc, key):
    return (doc.get(key) or {}).get("url")


def format_video(doc, owner, likes_count, is_liked):
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "duration": doc.get("duration"),
        "views": doc.get("views", 0),
        "createdAt": doc.get("created_at"),
        "videoUrl": _url(doc, "video_file"),
        "thumbnailUrl": _url(doc, "thumbnail"),
        "owner": owner,
        "likesCount": likes_count,
        "isLiked": is_liked,
    }


def format_post(doc, owner, likes_count, is_liked):
    # comments and tweets share a shape
    return {
        "id": str(doc["_id"]),
        "content": doc.get("content"),
        "createdAt": doc.get("created_at"),
        "owner": owner,
        "likesCount": likes_count,
        "isLiked": is_liked,
    }


def format_subscriber(doc, owner, subscribers_count, is_subscribed):
    summary = owner or {"id": str(doc["actor_id"]), "username": None, "fullname": None, "avatarUrl": None}
    return {
        **summary,
        "subscribedAt": doc.get("created_at"),
        "subscribersCount": subscribers_count,
        "isSubscribed": is_subscribed,
    }


@dataclass(frozen=True)
class FeedSpec:
    collection: str
    filters: Dict[str, str]             # public filter name -> stored field
    subject_type: str                   # engagement edges joined per item
    subject_key: str                    # item field holding the subject id
    owner_key: str                      # item field holding the owner id
    count_field: str
    flag_field: str
    formatter: Callable
    sortable: Dict[str, str] = field(default_factory=lambda: {"createdAt": "created_at"})
    parent: Optional[Tuple[str, str]] = None    # (required filter, parent collection)
    base_match: Dict[str, Any] = field(default_factory=dict)
    text_search: bool = False


FEED_SPECS = {
    FeedTarget.VIDEO: FeedSpec(
        collection="videos",
        filters={"userId": "owner"},
        subject_type="video",
        subject_key="_id",
        owner_key="owner",
        count_field="likesCount",
        flag_field="isLiked",
        formatter=format_video,
        sortable={"createdAt": "created_at", "views": "views", "duration": "duration", "title": "title"},
        base_match={"is_published": True},
        text_search=True,
    ),
    FeedTarget.COMMENT_BY_VIDEO: FeedSpec(
        collection="comments",
        filters={"videoId": "video"},
        subject_type="comment",
        subject_key="_id",
        owner_key="owner",
        count_field="likesCount",
        flag_field="isLiked",
        formatter=format_post,
        parent=("videoId", "videos"),
    ),
    FeedTarget.TWEET_BY_USER: FeedSpec(
        collection="tweets",
        filters={"userId": "owner"},
        subject_type="tweet",
        subject_key="_id",
        owner_key="owner",
        count_field="likesCount",
        flag_field="isLiked",
        formatter=format_post,
        parent=("userId", "users"),
    ),
    # Items are subscription edges on the channel; each subscriber is both the
    # owner and the subject of the follow-back join.
    FeedTarget.SUBSCRIBER_LIST: FeedSpec(
        collection="engagements",
        filters={"channelId": "subject_id"},
        subject_type="channel",
        subject_key="actor_id",
        owner_key="actor_id",
        count_field="subscribersCount",
        flag_field="isSubscribed",
        formatter=format_subscriber,
        parent=("channelId", "users"),
        base_match={"subject_type": "channel"},
    ),
}


@dataclass
class FeedContext:
    spec: FeedSpec
    filters: Dict[str, Any]
    viewer_id: Optional[ObjectId] = None
    page: int = 1
    page_size: int = 10
    query: Optional[str] = None
    sort_by: Optional[str] = None
    sort_type: Optional[str] = None
    ids: Dict[str, ObjectId] = field(default_factory=dict)
    match: Dict[str, Any] = field(default_factory=dict)
    sort: List[Tuple[str, int]] = field(default_factory=list)
    total: int = 0
    docs: List[dict] = field(default_factory=list)
    owners: Dict[ObjectId, dict] = field(default_factory=dict)
    edges: Dict[ObjectId, List[dict]] = field(default_factory=dict)
    counts: Dict[ObjectId, int] = field(default_factory=dict)
    flags: Dict[ObjectId, bool] = field(default_factory=dict)
    items: List[dict] = field(default_factory=list)


# --- Feed steps ---

def validate_filters(projector, ctx):
    for name, value in ctx.filters.items():
        if name not in ctx.spec.filters:
            raise InvalidParameter(f"Unsupported filter: {name}")
        if value is None or value == "":
            continue
        ctx.ids[name] = parse_object_id(value, name)
    if ctx.spec.parent and ctx.spec.parent[0] not in ctx.ids:
        raise InvalidIdentifier(f"{ctx.spec.parent[0]} is required")


def check_parent(projector, ctx):
    if not ctx.spec.parent:
        return
    name, collection = ctx.spec.parent
    if not projector.targets[collection].exists(ctx.ids[name]):
        raise NotFound(f"{name} {ctx.ids[name]} not found")


def build_match(projector, ctx):
    match = {}
    if ctx.spec.text_search and ctx.query:
        pattern = {"$regex": re.escape(ctx.query), "$options": "i"}
        match["$or"] = [{"title": pattern}, {"description": pattern}]
    for name, object_id in ctx.ids.items():
        match[ctx.spec.filters[name]] = object_id
    match.update(ctx.spec.base_match)
    ctx.match = match


def build_sort(projector, ctx):
    # sortBy only applies together with sortType
    if ctx.sort_by and ctx.sort_type:
        if ctx.sort_by not in ctx.spec.sortable:
            raise InvalidParameter(f"Cannot sort by {ctx.sort_by}")
        direction = 1 if ctx.sort_type.lower() == "asc" else -1
        ctx.sort = [(ctx.spec.sortable[ctx.sort_by], direction), ("_id", direction)]
    else:
        ctx.sort = [("created_at", -1), ("_id", -1)]


def paginate(projector, ctx):
    store = projector.targets[ctx.spec.collection]
    ctx.total = store.count(ctx.match)
    skip = (ctx.page - 1) * ctx.page_size
    ctx.docs = store.find_page(ctx.match, ctx.sort, skip, ctx.page_size)


def join_owners(projector, ctx):
    ctx.owners = projector.identities.find_owner_summaries(d.get(ctx.spec.owner_key) for d in ctx.docs)


def join_edges(projector, ctx):
    subject_ids = [d[ctx.spec.subject_key] for d in ctx.docs]
    ctx.edges = projector.engagements.find_edges(ctx.spec.subject_type, subject_ids)


def derive_counts(projector, ctx):
    ctx.counts = {d[ctx.spec.subject_key]: len(ctx.edges.get(d[ctx.spec.subject_key], [])) for d in ctx.docs}


def derive_flags(projector, ctx):
    ctx.flags = {
        d[ctx.spec.subject_key]: is_actor_present(ctx.edges.get(d[ctx.spec.subject_key], []), ctx.viewer_id)
        for d in ctx.docs
    }


def shape(projector, ctx):
    items = []
    for doc in ctx.docs:
        subject = doc[ctx.spec.subject_key]
        owner = ctx.owners.get(doc.get(ctx.spec.owner_key))
        items.append(ctx.spec.formatter(doc, owner, ctx.counts[subject], ctx.flags[subject]))
    ctx.items = items


FEED_STEPS = (
    ("validate_filters", validate_filters),
    ("check_parent", check_parent),
    ("build_match", build_match),
    ("build_sort", build_sort),
    ("paginate", paginate),
    ("join_owners", join_owners),
    ("join_edges", join_edges),
    ("derive_counts", derive_counts),
    ("derive_flags", derive_flags),
    ("shape", shape),
)


class ViewProjector:
    """Read-only projections over the content collections of one database."""

    def __init__(self, database):
        self.identities = IdentityStore(database["users"])
        self.engagements = EngagementStore(database["engagements"])
        self.targets = {
            name: TargetStore(database[name])
            for name in ("users", "videos", "comments", "tweets", "engagements")
        }

    def _page_args(self, page, page_size):
        page = coerce_positive_int(page, settings.DEFAULT_PAGE)
        page_size = min(coerce_positive_int(page_size, settings.DEFAULT_PAGE_SIZE), settings.MAX_PAGE_SIZE)
        # skip is sent to MongoDB as a signed 64-bit integer
        if (page - 1) * page_size > MAX_SKIP:
            raise InvalidParameter("page is out of range")
        return page, page_size

    def project_feed(self, target_type, filters=None, viewer_id=None, page=None, page_size=None,
                     query=None, sort_by=None, sort_type=None):
        try:
            spec = FEED_SPECS[FeedTarget(target_type)]
        except ValueError:
            raise InvalidParameter(f"Unknown feed type: {target_type}") from None
        page, page_size = self._page_args(page, page_size)
        ctx = FeedContext(
            spec=spec,
            filters=dict(filters or {}),
            viewer_id=parse_viewer(viewer_id),
            page=page,
            page_size=page_size,
            query=query,
            sort_by=sort_by,
            sort_type=sort_type,
        )
        logger.info(f"Feed request: target={target_type} filters={ctx.filters} page={page} size={page_size}")
        for name, step in FEED_STEPS:
            logger.debug(f"Running feed step {name}")
            step(self, ctx)
        return Page.build(ctx.items, ctx.total, page, page_size)

    def get_video(self, video_id, viewer_id=None):
        """
        Single video with owner channel stats. When the viewer is known, also
        counts a view and records the video in their watch history.
        """
        video_oid = parse_object_id(video_id, "videoId")
        viewer = parse_viewer(viewer_id)

        video = self.targets["videos"].find_one(video_oid)
        if not video:
            raise NotFound("Video not found")

        owner = None
        owner_id = video.get("owner")
        if owner_id is not None:
            owner = self.identities.find_owner_summary(owner_id)
        if owner:
            subscribers = self.engagements.find_edges("channel", [owner_id]).get(owner_id, [])
            owner["subscribersCount"] = len(subscribers)
            owner["isSubscribed"] = is_actor_present(subscribers, viewer)

        likes = self.engagements.find_edges("video", [video_oid]).get(video_oid, [])
        result = format_video(video, owner, len(likes), is_actor_present(likes, viewer))

        if viewer is not None:
            self._record_view(video_oid, viewer)
        return result

    def _record_view(self, video_id, viewer_id):
        # Best effort: a failed write never fails the read
        try:
            self.targets["videos"].increment(video_id, "views")
        except Exception as e:
            logger.warning(f"Could not increment views for {video_id}: {e}", exc_info=True)
        try:
            self.identities.append_watch_history(viewer_id, video_id)
        except Exception as e:
            logger.warning(f"Could not update watch history for {viewer_id}: {e}", exc_info=True)

    def liked_videos(self, viewer_id, page=None, page_size=None):
        """Videos the viewer has liked, most recently liked first."""
        viewer = parse_viewer(viewer_id)
        if viewer is None:
            raise Unauthorized("Sign in to see liked videos")
        page, page_size = self._page_args(page, page_size)

        # Page over likes whose video still exists, so totals and page sizes agree
        liked_ids = self.engagements.find_actor_subject_ids("video", viewer)
        live = self.targets["videos"].existing_ids(liked_ids)
        liked_ids = [vid for vid in liked_ids if vid in live]
        total = len(liked_ids)
        start = (page - 1) * page_size
        page_ids = liked_ids[start:start + page_size]
        videos = self.targets["videos"].find_many(page_ids)
        docs = [videos[vid] for vid in page_ids if vid in videos]

        owners = self.identities.find_owner_summaries(d.get("owner") for d in docs)
        edges = self.engagements.find_edges("video", [d["_id"] for d in docs])
        items = []
        for doc in docs:
            likes = edges.get(doc["_id"], [])
            items.append(format_video(doc, owners.get(doc.get("owner")), len(likes), is_actor_present(likes, viewer)))
        return Page.build(items, total, page, page_size)
