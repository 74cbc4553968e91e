from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from podadmin.auth.dependencies import get_current_user
from podadmin.auth.identity import Identity
from podadmin.common import to_object_id
from podadmin.content.content_store import ContentFileStore, get_content_store
from podadmin.database import get_db
from podadmin.progress import service
from podadmin.progress.models import (
    AssessmentResult, AssessmentSubmission, PodStages, PracticeResult, PracticeSubmission,
    StageComplete, StageDetail, StageProgressResponse, StageProgressUpdate,
)

router = APIRouter(prefix="/pods", tags=["Stage Progress"])


@router.get("/{pod_id}/stages", response_model=PodStages)
async def list_pod_stages_endpoint(
    pod_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    """All stages of a pod with the caller's progress"""
    return await service.list_pod_stages(db, user.user_id, to_object_id(pod_id))

@router.get("/{pod_id}/stages/{stage_id}", response_model=StageDetail)
async def get_stage_endpoint(
    pod_id: str,
    stage_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    store: ContentFileStore = Depends(get_content_store),
    user: Identity = Depends(get_current_user),
):
    return await service.get_stage_detail(
        db, store, user.user_id, to_object_id(pod_id), to_object_id(stage_id)
    )

@router.post("/{pod_id}/stages/{stage_id}/start", response_model=StageProgressResponse)
async def start_stage_endpoint(
    pod_id: str,
    stage_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    progress = await service.start_stage(db, user.user_id, to_object_id(pod_id), to_object_id(stage_id))
    return StageProgressResponse(message="Stage started successfully", stage_progress=progress)

@router.post("/{pod_id}/stages/{stage_id}/complete", response_model=StageProgressResponse)
async def complete_stage_endpoint(
    pod_id: str,
    stage_id: str,
    payload: StageComplete = StageComplete(),
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    progress = await service.complete_stage(
        db, user.user_id, to_object_id(pod_id), to_object_id(stage_id), payload
    )
    return StageProgressResponse(message="Stage completed successfully", stage_progress=progress)

@router.patch("/{pod_id}/stages/{stage_id}/progress", response_model=StageProgressResponse)
async def update_progress_endpoint(
    pod_id: str,
    stage_id: str,
    payload: StageProgressUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    """Record time spent, viewed items and attempts without changing status"""
    progress = await service.update_progress(db, user.user_id, to_object_id(stage_id), payload)
    return StageProgressResponse(message="Stage progress updated successfully", stage_progress=progress)

@router.post(
    "/{pod_id}/stages/{stage_id}/practice/submit",
    response_model=PracticeResult,
    response_model_exclude_none=True,
)
async def submit_practice_endpoint(
    pod_id: str,
    stage_id: str,
    payload: PracticeSubmission,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    return await service.submit_practice(
        db, user.user_id, to_object_id(pod_id), to_object_id(stage_id), payload
    )

@router.post(
    "/{pod_id}/stages/{stage_id}/assessment/submit",
    response_model=AssessmentResult,
    response_model_exclude_none=True,
)
async def submit_assessment_endpoint(
    pod_id: str,
    stage_id: str,
    payload: AssessmentSubmission,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Identity = Depends(get_current_user),
):
    return await service.submit_assessment(
        db, user.user_id, to_object_id(pod_id), to_object_id(stage_id), payload
    )
