"""
Learner-facing content: public problem pages and markdown delivery
"""

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from podadmin.auth.dependencies import get_current_user
from podadmin.common import to_object_id
from podadmin.content import database as content_db
from podadmin.content.content_store import ContentFileStore, get_content_store
from podadmin.content.models import PodContent, PodStage, ProblemDetail, StageContentResponse
from podadmin.database import get_db

router = APIRouter(tags=["Content"], dependencies=[Depends(get_current_user)])


@router.get("/problems/{slug}", response_model=ProblemDetail)
async def get_problem_endpoint(
    slug: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    store: ContentFileStore = Depends(get_content_store),
):
    """Public problem with its pods and stages"""
    detail = await content_db.get_public_problem(db, slug)
    if not detail:
        raise HTTPException(status_code=404, detail="Problem not found")

    external_content = None
    for pod in detail["pods"]:
        external_content = store.read(pod.get("content_file_path"))
        if external_content is not None:
            break

    return ProblemDetail.model_validate({
        **detail["problem"],
        "pods": detail["pods"],
        "external_content": external_content,
    })


@router.get("/content/pods/{pod_id}/content", response_model=PodContent)
async def get_pod_content_endpoint(
    pod_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    store: ContentFileStore = Depends(get_content_store),
):
    """Pod markdown - the content file wins over the stored description"""
    pod = await content_db.get_pod(db, to_object_id(pod_id))
    if not pod:
        raise HTTPException(status_code=404, detail="Pod not found")

    content = pod.get("description_md") or ""
    from_file = store.read(pod.get("content_file_path"))
    if from_file is not None:
        content = from_file

    return PodContent(content=content)


@router.get("/content/pods/{pod_id}/stages/{stage_id}/content", response_model=StageContentResponse)
async def get_stage_content_endpoint(
    pod_id: str,
    stage_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    store: ContentFileStore = Depends(get_content_store),
):
    doc = await content_db.get_stage_in_pod(db, to_object_id(pod_id), to_object_id(stage_id))
    if not doc:
        raise HTTPException(status_code=404, detail="Stage not found")
    stage = PodStage.model_validate(doc)

    content = stage.content.content_md or ""
    from_file = store.read_stage_markdown(stage.stage_key)
    if from_file is not None:
        content = from_file

    return StageContentResponse(content=content, stage_content=stage.content)
