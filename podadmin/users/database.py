import asyncio
import re
from typing import List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from podadmin.common import utcnow
from podadmin.users.models import PROFILE_DEFAULTS

SEARCH_FIELDS = ("email", "username", "first_name", "last_name")


async def get_profile(db: AsyncIOMotorDatabase, user_id: str) -> Optional[dict]:
    """Get profile by identity user id"""
    return await db.user_profiles.find_one({"user_id": user_id})

async def upsert_profile(db: AsyncIOMotorDatabase, user_id: str, email: Optional[str], updates: dict) -> dict:
    """
    Create or update the caller's profile

    Defaults are only written on insert, and never for a field being set now.
    """
    now = utcnow()
    fields = {**updates, "updated_at": now}
    if email:
        fields["email"] = email

    on_insert = {key: value for key, value in PROFILE_DEFAULTS.items() if key not in fields}
    on_insert["created_at"] = now

    return await db.user_profiles.find_one_and_update(
        {"user_id": user_id},
        {"$set": fields, "$setOnInsert": on_insert},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )

async def list_profiles(
    db: AsyncIOMotorDatabase,
    page: int,
    limit: int,
    tier: Optional[str] = None,
    search: Optional[str] = None,
) -> Tuple[List[dict], int]:
    query = {}
    if tier:
        query["subscription_tier"] = tier
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{field: pattern} for field in SEARCH_FIELDS]

    cursor = db.user_profiles.find(query).sort([("created_at", -1), ("_id", -1)]).skip((page - 1) * limit).limit(limit)
    return await asyncio.gather(
        cursor.to_list(length=limit),
        db.user_profiles.count_documents(query),
    )

async def get_profile_by_id(db: AsyncIOMotorDatabase, profile_id: ObjectId) -> Optional[dict]:
    return await db.user_profiles.find_one({"_id": profile_id})

async def set_subscription_tier(db: AsyncIOMotorDatabase, profile_id: ObjectId, tier: str) -> Optional[dict]:
    return await db.user_profiles.find_one_and_update(
        {"_id": profile_id},
        {"$set": {"subscription_tier": tier, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )

async def delete_profile(db: AsyncIOMotorDatabase, profile_id: ObjectId) -> bool:
    result = await db.user_profiles.delete_one({"_id": profile_id})
    return result.deleted_count > 0
