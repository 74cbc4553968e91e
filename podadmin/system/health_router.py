import logging

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from podadmin.common import utcnow
from podadmin.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health")
async def health_check(db: AsyncIOMotorDatabase = Depends(get_db)):
    """Liveness plus a database ping"""
    try:
        await db.command("ping")
        db_status = "healthy"
    except PyMongoError as e:
        logger.error("Database ping failed: %s", e)
        db_status = f"unhealthy: {e}"

    return {
        "status": "ok",
        "database": db_status,
        "timestamp": utcnow().isoformat(),
    }
