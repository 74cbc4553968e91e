from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError
from typing import Optional

from podadmin.auth.dependencies import get_settings, require_admin
from podadmin.common import MessageResponse, build_pagination, to_object_id
from podadmin.config import Settings
from podadmin.content import database as content_db
from podadmin.content.models import (
    Difficulty, PodPhase, StageType,
    Pod, PodCreate, PodList, PodUpdate,
    PodStage, StageCreate, StageList, StageUpdate,
    Problem, ProblemCreate, ProblemList, ProblemUpdate,
)
from podadmin.database import get_db

router = APIRouter(prefix="/admin", tags=["Admin Content"], dependencies=[Depends(require_admin)])


def _conflict(entity: str) -> HTTPException:
    return HTTPException(status_code=409, detail=f"{entity} conflicts with an existing record")


# ==================== PROBLEMS ====================

@router.get("/problems", response_model=ProblemList)
async def list_problems_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    difficulty: Optional[Difficulty] = None,
    is_public: Optional[bool] = Query(None, alias="isPublic"),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """List problems, newest first"""
    problems, total = await content_db.list_problems(
        db, page, limit,
        difficulty=difficulty.value if difficulty else None,
        is_public=is_public,
    )
    return ProblemList(
        items=[Problem.model_validate(problem) for problem in problems],
        pagination=build_pagination(page, limit, total),
    )

@router.post("/problems", response_model=Problem, status_code=201)
async def create_problem_endpoint(
    payload: ProblemCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        problem = await content_db.create_problem(db, payload.model_dump(mode="json"))
    except DuplicateKeyError:
        raise _conflict("Problem slug")
    return Problem.model_validate(problem)

@router.put("/problems/{problem_id}", response_model=Problem)
async def update_problem_endpoint(
    problem_id: str,
    payload: ProblemUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updates = payload.model_dump(mode="json", exclude_unset=True)
    try:
        problem = await content_db.update_problem(db, to_object_id(problem_id), updates)
    except DuplicateKeyError:
        raise _conflict("Problem slug")
    if not problem:
        raise HTTPException(status_code=404, detail="Problem not found")
    return Problem.model_validate(problem)

@router.delete("/problems/{problem_id}", response_model=MessageResponse)
async def delete_problem_endpoint(
    problem_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Delete problem and its pods (stages too when CASCADE_STAGES_ON_PROBLEM_DELETE is set)"""
    result = await content_db.delete_problem(
        db, to_object_id(problem_id), cascade_stages=settings.CASCADE_STAGES_ON_PROBLEM_DELETE
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Problem not found")
    return MessageResponse(message="Problem deleted successfully")


# ==================== PODS ====================

@router.get("/pods", response_model=PodList)
async def list_pods_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    phase: Optional[PodPhase] = None,
    search: Optional[str] = None,
    problem_id: Optional[str] = Query(None, alias="problemId"),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    pods, total = await content_db.list_pods(
        db, page, limit,
        phase=phase.value if phase else None,
        search=search,
        problem_id=to_object_id(problem_id) if problem_id else None,
    )
    return PodList(items=pods, pagination=build_pagination(page, limit, total))

@router.post("/pods", response_model=Pod, status_code=201)
async def create_pod_endpoint(
    payload: PodCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """Create pod and append it to its problem's pod list"""
    pod_data = payload.model_dump(mode="json")
    pod_data["problem_id"] = to_object_id(payload.problem_id)
    try:
        pod = await content_db.create_pod(db, pod_data)
    except DuplicateKeyError:
        raise _conflict("Pod order")
    if not pod:
        raise HTTPException(status_code=404, detail="Problem not found")
    return Pod.model_validate(pod)

@router.put("/pods/{pod_id}", response_model=Pod)
async def update_pod_endpoint(
    pod_id: str,
    payload: PodUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updates = payload.model_dump(mode="json", exclude_unset=True)
    try:
        pod = await content_db.update_pod(db, to_object_id(pod_id), updates)
    except DuplicateKeyError:
        raise _conflict("Pod order")
    if not pod:
        raise HTTPException(status_code=404, detail="Pod not found")
    return Pod.model_validate(pod)

@router.delete("/pods/{pod_id}", response_model=MessageResponse)
async def delete_pod_endpoint(
    pod_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not await content_db.delete_pod(db, to_object_id(pod_id)):
        raise HTTPException(status_code=404, detail="Pod not found")
    return MessageResponse(message="Pod deleted successfully")


# ==================== STAGES ====================

@router.get("/stages", response_model=StageList)
async def list_stages_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    pod_id: Optional[str] = Query(None, alias="podId"),
    stage_type: Optional[StageType] = Query(None, alias="type"),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    stages, total = await content_db.list_stages(
        db, page, limit,
        pod_id=to_object_id(pod_id) if pod_id else None,
        stage_type=stage_type.value if stage_type else None,
    )
    return StageList(items=stages, pagination=build_pagination(page, limit, total))

@router.post("/stages", response_model=PodStage, status_code=201)
async def create_stage_endpoint(
    payload: StageCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    stage_data = payload.model_dump(mode="json")
    stage_data["pod_id"] = to_object_id(payload.pod_id)
    try:
        stage = await content_db.create_stage(db, stage_data)
    except DuplicateKeyError:
        raise _conflict("Stage order")
    if not stage:
        raise HTTPException(status_code=404, detail="Pod not found")
    return PodStage.model_validate(stage)

@router.put("/stages/{stage_id}", response_model=PodStage)
async def update_stage_endpoint(
    stage_id: str,
    payload: StageUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updates = payload.model_dump(mode="json", exclude_unset=True)
    try:
        stage = await content_db.update_stage(db, to_object_id(stage_id), updates)
    except DuplicateKeyError:
        raise _conflict("Stage order")
    if not stage:
        raise HTTPException(status_code=404, detail="Stage not found")
    return PodStage.model_validate(stage)

@router.delete("/stages/{stage_id}", response_model=MessageResponse)
async def delete_stage_endpoint(
    stage_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not await content_db.delete_stage(db, to_object_id(stage_id)):
        raise HTTPException(status_code=404, detail="Stage not found")
    return MessageResponse(message="Stage deleted successfully")
