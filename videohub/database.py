from pymongo import MongoClient, ASCENDING, DESCENDING
from .config import settings

# MongoClient connects lazily
client = MongoClient(settings.MONGO_URI)
db = client[settings.MONGO_DB_NAME]

videos_collection = db["videos"]


def create_indexes(database=db):
    # Feeds sort newest first with _id as tie-breaker
    database["videos"].create_index([("owner", ASCENDING), ("created_at", DESCENDING)])
    database["videos"].create_index([("is_published", ASCENDING), ("created_at", DESCENDING)])
    database["comments"].create_index([("video", ASCENDING), ("created_at", DESCENDING)])
    database["tweets"].create_index([("owner", ASCENDING), ("created_at", DESCENDING)])

    database["users"].create_index("username", unique=True)

    # Likes and subscriptions share one edge collection; at most one edge per (actor, subject) pair
    database["engagements"].create_index(
        [("subject_type", ASCENDING), ("subject_id", ASCENDING), ("actor_id", ASCENDING)],
        unique=True,
    )
    # Liked-videos feed walks an actor's edges
    database["engagements"].create_index(
        [("actor_id", ASCENDING), ("subject_type", ASCENDING), ("created_at", DESCENDING)]
    )
