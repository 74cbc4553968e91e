import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from podadmin.progress.service import _find_or_create


class LosingRaceCollection:
    """Another request inserts the winner between our match and our upsert"""

    def __init__(self, collection, winner: dict):
        self._collection = collection
        self._winner = winner

    async def find_one_and_update(self, *args, **kwargs):
        await self._collection.insert_one(self._winner)
        raise DuplicateKeyError("E11000 duplicate key error")

    async def find_one(self, *args, **kwargs):
        return await self._collection.find_one(*args, **kwargs)


async def test_creates_once_then_returns_existing(db) -> None:
    query = {"user_id": "u1", "pod_id": ObjectId(), "status": "active"}

    created = await _find_or_create(db.pod_attempts, query, {"started_at": 1})
    again = await _find_or_create(db.pod_attempts, query, {"started_at": 2})

    assert again["_id"] == created["_id"]
    assert again["started_at"] == 1
    assert await db.pod_attempts.count_documents({}) == 1


async def test_lost_insert_race_returns_winner(db) -> None:
    pod_id = ObjectId()
    query = {"user_id": "u1", "pod_id": pod_id, "status": "active"}
    winner = {"_id": ObjectId(), **query, "problem_attempt_id": ObjectId(), "started_at": 1}

    result = await _find_or_create(LosingRaceCollection(db.pod_attempts, winner), query, {"started_at": 2})

    assert result["_id"] == winner["_id"]
    assert result["started_at"] == 1
    assert await db.pod_attempts.count_documents({}) == 1


async def test_conflict_without_matching_record_propagates(db) -> None:
    pod_id = ObjectId()
    await db.pod_attempts.create_index([("user_id", 1), ("pod_id", 1)], unique=True)
    await db.pod_attempts.insert_one({"user_id": "u1", "pod_id": pod_id, "status": "submitted"})

    with pytest.raises(DuplicateKeyError):
        await _find_or_create(
            db.pod_attempts,
            {"user_id": "u1", "pod_id": pod_id, "status": "active"},
            {"started_at": 1},
        )
