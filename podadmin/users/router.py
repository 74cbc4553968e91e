import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from podadmin.auth.dependencies import get_current_user, require_admin
from podadmin.auth.identity import Identity
from podadmin.common import MessageResponse, build_pagination, to_object_id
from podadmin.database import get_db
from podadmin.users import database as users_db
from podadmin.users.models import (
    ProfileUpdate, SubscriptionTier, SubscriptionUpdate, UserList, UserProfile,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])

TIERS = {tier.value for tier in SubscriptionTier}


# ==================== OWN PROFILE ====================

@router.get("/profile", response_model=UserProfile)
async def get_profile_endpoint(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    profile = await users_db.get_profile(db, user.user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return UserProfile.model_validate(profile)

@router.put("/profile", response_model=UserProfile)
async def update_profile_endpoint(
    payload: ProfileUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    """Create or update the caller's profile; user id and email come from the token"""
    updates = payload.model_dump(mode="json", exclude_unset=True)
    profile = await users_db.upsert_profile(db, user.user_id, user.email, updates)
    return UserProfile.model_validate(profile)


# ==================== ADMIN ====================

@router.get("/admin/users", response_model=UserList, dependencies=[Depends(require_admin)])
async def list_users_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    tier: Optional[SubscriptionTier] = None,
    search: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    profiles, total = await users_db.list_profiles(
        db, page, limit, tier=tier.value if tier else None, search=search
    )
    return UserList(items=profiles, pagination=build_pagination(page, limit, total))

@router.get("/admin/users/{profile_id}", response_model=UserProfile, dependencies=[Depends(require_admin)])
async def get_user_endpoint(
    profile_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    profile = await users_db.get_profile_by_id(db, to_object_id(profile_id))
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return UserProfile.model_validate(profile)

@router.put(
    "/admin/users/{profile_id}/subscription",
    response_model=UserProfile,
    dependencies=[Depends(require_admin)],
)
async def update_subscription_endpoint(
    profile_id: str,
    payload: SubscriptionUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if payload.subscription_tier not in TIERS:
        raise HTTPException(status_code=400, detail="Invalid subscription tier")

    profile = await users_db.set_subscription_tier(db, to_object_id(profile_id), payload.subscription_tier)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    logger.info("Subscription for profile %s set to %s", profile_id, payload.subscription_tier)
    return UserProfile.model_validate(profile)

@router.delete("/admin/users/{profile_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_user_endpoint(
    profile_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not await users_db.delete_profile(db, to_object_id(profile_id)):
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(message="User deleted successfully")
