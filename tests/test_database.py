import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from videohub.database import create_indexes


def test_engagement_edges_are_unique_per_actor_and_subject(mongo_db):
    create_indexes(mongo_db)
    edge = {"subject_type": "video", "subject_id": ObjectId(), "actor_id": ObjectId()}
    mongo_db["engagements"].insert_one(dict(edge))

    with pytest.raises(DuplicateKeyError):
        mongo_db["engagements"].insert_one(dict(edge))

    # same actor and subject id under another subject type is a different edge
    mongo_db["engagements"].insert_one({**edge, "subject_type": "comment"})
