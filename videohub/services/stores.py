import datetime
import logging
from collections import defaultdict
from functools import wraps

from pymongo.errors import DuplicateKeyError, PyMongoError

from ..errors import StorageError

logger = logging.getLogger("uvicorn")

OWNER_SUMMARY_PROJECTION = {"username": 1, "fullname": 1, "avatar.url": 1}


def storage_call(func):
    """Re-raise any driver failure as StorageError, keeping the original as the cause."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"Storage failure in {func.__qualname__}: {e}", exc_info=True)
            raise StorageError(f"Storage failure: {e}") from e
    return wrapper


def format_owner_summary(user):
    if not user:
        return None
    return {
        "id": str(user["_id"]),
        "username": user.get("username"),
        "fullname": user.get("fullname"),
        "avatarUrl": (user.get("avatar") or {}).get("url"),
    }


class IdentityStore:
    def __init__(self, users_collection):
        self.users = users_collection

    @storage_call
    def exists(self, user_id):
        return self.users.find_one({"_id": user_id}, {"_id": 1}) is not None

    @storage_call
    def find_owner_summary(self, user_id):
        return format_owner_summary(self.users.find_one({"_id": user_id}, OWNER_SUMMARY_PROJECTION))

    @storage_call
    def find_owner_summaries(self, user_ids):
        """Batched owner lookup keyed by ObjectId. Ids with no user are simply absent."""
        ids = list({uid for uid in user_ids if uid is not None})
        if not ids:
            return {}
        users = self.users.find({"_id": {"$in": ids}}, OWNER_SUMMARY_PROJECTION)
        return {u["_id"]: format_owner_summary(u) for u in users}

    @storage_call
    def append_watch_history(self, user_id, video_id):
        # $addToSet keeps watch_history a set
        self.users.update_one({"_id": user_id}, {"$addToSet": {"watch_history": video_id}})


class EngagementStore:
    """Likes and subscriptions, stored as edges of (subject_type, subject_id, actor_id)."""

    def __init__(self, engagements_collection):
        self.edges = engagements_collection

    @storage_call
    def find_edges(self, subject_type, subject_ids):
        grouped = defaultdict(list)
        ids = list(subject_ids)
        if not ids:
            return grouped
        cursor = self.edges.find(
            {"subject_type": subject_type, "subject_id": {"$in": ids}},
            {"_id": 0, "subject_id": 1, "actor_id": 1},
        )
        for edge in cursor:
            grouped[edge["subject_id"]].append(edge)
        return grouped

    @storage_call
    def find_actor_subject_ids(self, subject_type, actor_id):
        """Subject ids the actor has engaged with, most recent edge first."""
        cursor = self.edges.find(
            {"subject_type": subject_type, "actor_id": actor_id},
            {"_id": 0, "subject_id": 1},
        ).sort([("created_at", -1), ("_id", -1)])
        return [edge["subject_id"] for edge in cursor]

    @storage_call
    def toggle_edge(self, subject_type, subject_id, actor_id):
        """Remove the edge if present, else create it. Returns True when the edge now exists."""
        key = {"subject_type": subject_type, "subject_id": subject_id, "actor_id": actor_id}
        removed = self.edges.delete_one(key)
        if removed.deleted_count:
            return False
        try:
            self.edges.insert_one({**key, "created_at": datetime.datetime.utcnow()})
        except DuplicateKeyError:
            # A concurrent toggle inserted the same edge first
            logger.info(f"Edge already present for {subject_type} {subject_id}")
        return True


class TargetStore:
    """Paginated reads and atomic counter updates over one content collection."""

    def __init__(self, collection):
        self.collection = collection

    @storage_call
    def exists(self, doc_id):
        return self.collection.find_one({"_id": doc_id}, {"_id": 1}) is not None

    @storage_call
    def find_one(self, doc_id):
        return self.collection.find_one({"_id": doc_id})

    @storage_call
    def existing_ids(self, doc_ids):
        ids = list(doc_ids)
        if not ids:
            return set()
        return {d["_id"] for d in self.collection.find({"_id": {"$in": ids}}, {"_id": 1})}

    @storage_call
    def find_many(self, doc_ids):
        return {d["_id"]: d for d in self.collection.find({"_id": {"$in": list(doc_ids)}})}

    @storage_call
    def count(self, match):
        return self.collection.count_documents(match)

    @storage_call
    def find_page(self, match, sort, skip, limit):
        return list(self.collection.find(match).sort(sort).skip(skip).limit(limit))

    @storage_call
    def increment(self, doc_id, field, by=1):
        self.collection.update_one({"_id": doc_id}, {"$inc": {field: by}})
