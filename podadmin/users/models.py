from pydantic import Field
from typing import ClassVar, FrozenSet, List, Optional
from datetime import datetime
from enum import Enum

from podadmin.common import ApiModel, Pagination, PartialUpdate, PyObjectId

# ==================== ENUMS ====================

class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"

class ProfileVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    UNLISTED = "unlisted"

class SubscriptionTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"

# ==================== PROFILE MODELS ====================

class EmailNotifications(ApiModel):
    pod_updates: bool = True
    reviews: bool = True
    announcements: bool = True
    weekly_digest: bool = False

class InAppNotifications(ApiModel):
    pod_reminders: bool = True
    review_requests: bool = True
    collaboration_requests: bool = True
    system_updates: bool = True

class ProfileFields(ApiModel):
    """Fields the owner may edit"""
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    background_url: Optional[str] = None
    background_position_x: Optional[float] = None
    background_position_y: Optional[float] = None
    bio: Optional[str] = None
    student_institution: Optional[str] = None
    student_degree: Optional[str] = None
    student_year: Optional[int] = None
    profession_role: Optional[str] = None
    profession_org: Optional[str] = None
    experience_years: Optional[float] = None
    location: Optional[str] = None
    github_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    twitter_url: Optional[str] = None
    kaggle_url: Optional[str] = None
    x_url: Optional[str] = None
    bsky_url: Optional[str] = None
    website_url: Optional[str] = None
    other_socials: Optional[List[str]] = None
    theme: Optional[Theme] = None
    language: Optional[str] = None
    timezone: Optional[str] = None
    email_notifications: Optional[EmailNotifications] = None
    in_app_notifications: Optional[InAppNotifications] = None
    profile_visibility: Optional[ProfileVisibility] = None
    show_email: Optional[bool] = None
    show_social_links: Optional[bool] = None

class ProfileUpdate(ProfileFields, PartialUpdate):
    # fields with a stored default must stay set
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset(
        set(ProfileFields.model_fields) - {
            "background_position_x", "background_position_y", "other_socials", "theme",
            "language", "timezone", "email_notifications", "in_app_notifications",
            "profile_visibility", "show_email", "show_social_links",
        }
    )

class UserProfile(ProfileFields):
    id: PyObjectId = Field(..., alias="_id")
    user_id: str
    email: Optional[str] = None
    background_position_x: float = 50
    background_position_y: float = 50
    other_socials: List[str] = []
    theme: Theme = Theme.SYSTEM
    language: str = "en-US"
    timezone: str = "UTC"
    email_notifications: EmailNotifications = Field(default_factory=EmailNotifications)
    in_app_notifications: InAppNotifications = Field(default_factory=InAppNotifications)
    profile_visibility: ProfileVisibility = ProfileVisibility.PUBLIC
    show_email: bool = False
    show_social_links: bool = True
    api_enabled: bool = False
    organization_id: Optional[str] = None
    role: Optional[str] = None
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class SubscriptionUpdate(ApiModel):
    # validated by hand so an unknown tier is a 400 with a readable message
    subscription_tier: Optional[str] = None

class UserList(ApiModel):
    items: List[UserProfile]
    pagination: Pagination

# Defaults written when a profile is first created
PROFILE_DEFAULTS = {
    "background_position_x": 50,
    "background_position_y": 50,
    "other_socials": [],
    "theme": Theme.SYSTEM.value,
    "language": "en-US",
    "timezone": "UTC",
    "email_notifications": EmailNotifications().model_dump(),
    "in_app_notifications": InAppNotifications().model_dump(),
    "profile_visibility": ProfileVisibility.PUBLIC.value,
    "show_email": False,
    "show_social_links": True,
    "api_enabled": False,
    "subscription_tier": SubscriptionTier.FREE.value,
}
