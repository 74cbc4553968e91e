from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from podadmin.analytics import service
from podadmin.analytics.models import (
    PodAnalytics, ProblemAnalytics, ProgressAnalytics, StageAnalytics, UserAnalytics,
)
from podadmin.auth.dependencies import require_admin
from podadmin.database import get_db

router = APIRouter(prefix="/admin/analytics", tags=["Admin Analytics"], dependencies=[Depends(require_admin)])


@router.get("/users", response_model=UserAnalytics)
async def user_analytics(db: AsyncIOMotorDatabase = Depends(get_db)):
    """User totals, activity, growth by month and tier split"""
    return await service.get_user_analytics(db)

@router.get("/problems", response_model=ProblemAnalytics)
async def problem_analytics(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.get_problem_analytics(db)

@router.get("/pods", response_model=PodAnalytics)
async def pod_analytics(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.get_pod_analytics(db)

@router.get("/stages", response_model=StageAnalytics)
async def stage_analytics(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.get_stage_analytics(db)

@router.get("/progress", response_model=ProgressAnalytics)
async def progress_analytics(db: AsyncIOMotorDatabase = Depends(get_db)):
    """Problem attempt completion and abandonment rates"""
    return await service.get_progress_analytics(db)
