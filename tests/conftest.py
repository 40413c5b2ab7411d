import datetime

import mongomock
import pytest
from bson import ObjectId

from videohub.services.engagement_service import EngagementService
from videohub.services.view_projector import ViewProjector

BASE_TIME = datetime.datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["videohub_test"]


@pytest.fixture
def projector(mongo_db):
    return ViewProjector(mongo_db)


@pytest.fixture
def engagement_service(mongo_db):
    return EngagementService(mongo_db)


class Seeder:
    """Inserts documents shaped like the ones the CRUD layer writes."""

    def __init__(self, db):
        self.db = db

    def user(self, username, **extra):
        doc = {
            "_id": ObjectId(),
            "username": username,
            "fullname": username.title(),
            "email": f"{username}@example.com",
            "password": "hashed-secret",
            "refresh_token": "refresh-secret",
            "avatar": {"url": f"https://cdn.example.com/{username}.png", "public_id": username},
            "watch_history": [],
            "created_at": BASE_TIME,
        }
        doc.update(extra)
        self.db["users"].insert_one(doc)
        return doc["_id"]

    def video(self, owner, title="video", minutes=0, **extra):
        doc = {
            "_id": ObjectId(),
            "title": title,
            "description": f"about {title}",
            "duration": 60,
            "views": 0,
            "is_published": True,
            "owner": owner,
            "video_file": {"url": f"https://cdn.example.com/{title}.mp4", "public_id": title},
            "thumbnail": {"url": f"https://cdn.example.com/{title}.jpg", "public_id": title},
            "created_at": BASE_TIME + datetime.timedelta(minutes=minutes),
        }
        doc.update(extra)
        self.db["videos"].insert_one(doc)
        return doc["_id"]

    def comment(self, video, owner, content="nice", minutes=0):
        doc = {
            "_id": ObjectId(),
            "content": content,
            "video": video,
            "owner": owner,
            "created_at": BASE_TIME + datetime.timedelta(minutes=minutes),
        }
        self.db["comments"].insert_one(doc)
        return doc["_id"]

    def tweet(self, owner, content="hello", minutes=0):
        doc = {
            "_id": ObjectId(),
            "content": content,
            "owner": owner,
            "created_at": BASE_TIME + datetime.timedelta(minutes=minutes),
        }
        self.db["tweets"].insert_one(doc)
        return doc["_id"]

    def edge(self, subject_type, subject_id, actor_id, minutes=0):
        self.db["engagements"].insert_one({
            "subject_type": subject_type,
            "subject_id": subject_id,
            "actor_id": actor_id,
            "created_at": BASE_TIME + datetime.timedelta(minutes=minutes),
        })

    def like(self, subject_type, subject_id, actor_id, minutes=0):
        self.edge(subject_type, subject_id, actor_id, minutes)

    def subscribe(self, subscriber, channel, minutes=0):
        self.edge("channel", channel, subscriber, minutes)


@pytest.fixture
def seed(mongo_db):
    return Seeder(mongo_db)
