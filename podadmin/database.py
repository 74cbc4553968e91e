"""
MongoDB connection lifecycle and indexes
"""

import logging

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from typing import Optional

from podadmin.config import Settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages MongoDB connection lifecycle"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    def connect(self):
        """Initialize MongoDB connection"""
        mongo_url = self.settings.MONGO_URL
        if not mongo_url:
            raise RuntimeError("MONGO_URL environment variable required")

        self.client = AsyncIOMotorClient(mongo_url)
        self.db = self.client[self.settings.MONGO_DB_NAME]
        logger.info("MongoDB client created for database %s", self.settings.MONGO_DB_NAME)

    def disconnect(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB disconnected")

    def get_database(self) -> AsyncIOMotorDatabase:
        if self.db is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self.db


def get_db(request: Request) -> AsyncIOMotorDatabase:
    """FastAPI dependency for database access"""
    return request.app.state.db


# ==================== DATABASE INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create the indexes that back the uniqueness invariants and common lookups"""

    # Problems
    await db.problems.create_index("slug", unique=True)
    await db.problems.create_index("difficulty")
    await db.problems.create_index("is_public")
    await db.problems.create_index([("is_public", 1), ("difficulty", 1)])

    # Pods
    await db.pods.create_index("problem_id")
    await db.pods.create_index([("problem_id", 1), ("order", 1)], unique=True)

    # Stages
    await db.pod_stages.create_index("pod_id")
    await db.pod_stages.create_index([("pod_id", 1), ("order", 1)], unique=True)

    # Problem attempts (one active per user/problem is enforced by find-or-create)
    await db.problem_attempts.create_index("user_id")
    await db.problem_attempts.create_index("problem_id")
    await db.problem_attempts.create_index([("user_id", 1), ("problem_id", 1), ("status", 1)])

    # Pod attempts
    await db.pod_attempts.create_index("problem_attempt_id")
    await db.pod_attempts.create_index([("user_id", 1), ("pod_id", 1), ("status", 1)])
    await db.pod_attempts.create_index(
        [("user_id", 1), ("pod_id", 1)],
        unique=True,
        partialFilterExpression={"status": "active"},
    )

    # Stage progress
    await db.user_stage_progress.create_index("user_id")
    await db.user_stage_progress.create_index("stage_id")
    await db.user_stage_progress.create_index([("pod_attempt_id", 1), ("stage_id", 1)], unique=True)
    await db.user_stage_progress.create_index([("user_id", 1), ("stage_id", 1), ("created_at", -1)])

    # Profiles
    await db.user_profiles.create_index("user_id", unique=True)
    await db.user_profiles.create_index("subscription_tier")
    await db.user_profiles.create_index("created_at")

    logger.info("Indexes created")
