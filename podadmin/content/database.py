import asyncio
import logging
import re
from typing import Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from podadmin.common import utcnow

logger = logging.getLogger(__name__)


async def _paginate(collection, query: dict, sort: List[Tuple[str, int]], page: int, limit: int) -> Tuple[List[dict], int]:
    cursor = collection.find(query).sort(sort).skip((page - 1) * limit).limit(limit)
    return await asyncio.gather(
        cursor.to_list(length=limit),
        collection.count_documents(query),
    )


# ==================== PROBLEM CRUD ====================

async def create_problem(db: AsyncIOMotorDatabase, problem_data: dict) -> dict:
    """Create problem with an empty pod list"""
    now = utcnow()
    problem = {
        **problem_data,
        "pods": [],
        "created_at": now,
        "updated_at": now,
    }
    result = await db.problems.insert_one(problem)
    problem["_id"] = result.inserted_id
    logger.info("Problem created: %s (%s)", problem["slug"], result.inserted_id)
    return problem

async def list_problems(
    db: AsyncIOMotorDatabase,
    page: int,
    limit: int,
    difficulty: Optional[str] = None,
    is_public: Optional[bool] = None,
) -> Tuple[List[dict], int]:
    """Problems newest first"""
    query = {}
    if difficulty:
        query["difficulty"] = difficulty
    if is_public is not None:
        query["is_public"] = is_public

    return await _paginate(db.problems, query, [("created_at", -1), ("_id", -1)], page, limit)

async def update_problem(db: AsyncIOMotorDatabase, problem_id: ObjectId, updates: dict) -> Optional[dict]:
    updates["updated_at"] = utcnow()
    return await db.problems.find_one_and_update(
        {"_id": problem_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )

async def delete_problem(db: AsyncIOMotorDatabase, problem_id: ObjectId, cascade_stages: bool = False) -> Optional[dict]:
    """
    Delete problem and its pods

    Stages of the deleted pods are only removed when cascade_stages is set;
    otherwise they stay behind and the count is logged.

    Returns:
        {"pods_deleted": int, "stages_deleted": int, "orphaned_stages": int}
        or None when the problem does not exist
    """
    problem = await db.problems.find_one_and_delete({"_id": problem_id})
    if not problem:
        return None

    pods = await db.pods.find({"problem_id": problem_id}, {"_id": 1}).to_list(length=None)
    pod_ids = [pod["_id"] for pod in pods]

    pods_result = await db.pods.delete_many({"problem_id": problem_id})

    stages_deleted = 0
    orphaned_stages = 0
    if pod_ids:
        if cascade_stages:
            stages_result = await db.pod_stages.delete_many({"pod_id": {"$in": pod_ids}})
            stages_deleted = stages_result.deleted_count
        else:
            orphaned_stages = await db.pod_stages.count_documents({"pod_id": {"$in": pod_ids}})
            if orphaned_stages:
                logger.warning(
                    "Problem %s deleted, %d stages left without a pod",
                    problem_id, orphaned_stages,
                )

    logger.info(
        "Problem %s deleted with %d pods, %d stages",
        problem_id, pods_result.deleted_count, stages_deleted,
    )
    return {
        "pods_deleted": pods_result.deleted_count,
        "stages_deleted": stages_deleted,
        "orphaned_stages": orphaned_stages,
    }

async def get_public_problem(db: AsyncIOMotorDatabase, slug: str) -> Optional[dict]:
    """
    Public problem by slug with its pods (by order), each carrying its stages
    """
    problem = await db.problems.find_one({"slug": slug, "is_public": True})
    if not problem:
        return None

    pods = await db.pods.find({"problem_id": problem["_id"]}).sort("order", 1).to_list(length=None)
    pod_ids = [pod["_id"] for pod in pods]
    stages = await db.pod_stages.find({"pod_id": {"$in": pod_ids}}).sort("order", 1).to_list(length=None)

    stages_by_pod: Dict[ObjectId, List[dict]] = {}
    for stage in stages:
        stages_by_pod.setdefault(stage["pod_id"], []).append(stage)
    for pod in pods:
        pod["stages"] = stages_by_pod.get(pod["_id"], [])

    return {"problem": problem, "pods": pods}


# ==================== POD CRUD ====================

async def create_pod(db: AsyncIOMotorDatabase, pod_data: dict) -> Optional[dict]:
    """
    Create pod and register it on its problem

    Two separate writes: the pod insert, then the problem's pod reference.
    Returns None when the problem does not exist.
    """
    problem_id = pod_data["problem_id"]
    if not await db.problems.find_one({"_id": problem_id}, {"_id": 1}):
        return None

    now = utcnow()
    pod = {**pod_data, "created_at": now, "updated_at": now}
    result = await db.pods.insert_one(pod)
    pod["_id"] = result.inserted_id

    await db.problems.update_one(
        {"_id": problem_id},
        {
            "$push": {"pods": {"pod_id": pod["_id"], "order": pod["order"], "weight": 1}},
            "$set": {"updated_at": now},
        },
    )
    logger.info("Pod created: %s under problem %s", pod["_id"], problem_id)
    return pod

async def get_pod(db: AsyncIOMotorDatabase, pod_id: ObjectId) -> Optional[dict]:
    """Get pod by ID"""
    return await db.pods.find_one({"_id": pod_id})

async def list_pods(
    db: AsyncIOMotorDatabase,
    page: int,
    limit: int,
    phase: Optional[str] = None,
    search: Optional[str] = None,
    problem_id: Optional[ObjectId] = None,
) -> Tuple[List[dict], int]:
    """Pods by problem then order, annotated with their problem's title and slug"""
    query = {}
    if phase:
        query["phase"] = phase
    if search:
        query["title"] = {"$regex": re.escape(search), "$options": "i"}
    if problem_id:
        query["problem_id"] = problem_id

    pods, total = await _paginate(db.pods, query, [("problem_id", 1), ("order", 1)], page, limit)

    problem_ids = list({pod["problem_id"] for pod in pods})
    problems = await db.problems.find(
        {"_id": {"$in": problem_ids}}, {"title": 1, "slug": 1}
    ).to_list(length=None)
    by_id = {problem["_id"]: problem for problem in problems}

    for pod in pods:
        problem = by_id.get(pod["problem_id"])
        if problem:
            pod["problem_title"] = problem.get("title")
            pod["problem_slug"] = problem.get("slug")

    return pods, total

async def update_pod(db: AsyncIOMotorDatabase, pod_id: ObjectId, updates: dict) -> Optional[dict]:
    updates["updated_at"] = utcnow()
    pod = await db.pods.find_one_and_update(
        {"_id": pod_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )

    # Keep the problem's reference order in step with the pod
    if pod and "order" in updates:
        await db.problems.update_one(
            {"_id": pod["problem_id"], "pods.pod_id": pod_id},
            {"$set": {"pods.$.order": updates["order"]}},
        )
    return pod

async def delete_pod(db: AsyncIOMotorDatabase, pod_id: ObjectId) -> bool:
    """Delete pod, its stages, and the problem's reference to it"""
    pod = await db.pods.find_one_and_delete({"_id": pod_id})
    if not pod:
        return False

    stages_result = await db.pod_stages.delete_many({"pod_id": pod_id})
    await db.problems.update_one(
        {"_id": pod["problem_id"]},
        {"$pull": {"pods": {"pod_id": pod_id}}, "$set": {"updated_at": utcnow()}},
    )
    logger.info("Pod %s deleted with %d stages", pod_id, stages_result.deleted_count)
    return True


# ==================== STAGE CRUD ====================

async def create_stage(db: AsyncIOMotorDatabase, stage_data: dict) -> Optional[dict]:
    """Returns None when the pod does not exist"""
    if not await db.pods.find_one({"_id": stage_data["pod_id"]}, {"_id": 1}):
        return None

    now = utcnow()
    stage = {**stage_data, "created_at": now, "updated_at": now}
    result = await db.pod_stages.insert_one(stage)
    stage["_id"] = result.inserted_id
    logger.info("Stage created: %s under pod %s", stage["_id"], stage["pod_id"])
    return stage

async def get_stage_in_pod(db: AsyncIOMotorDatabase, pod_id: ObjectId, stage_id: ObjectId) -> Optional[dict]:
    """Get stage by ID, only if it belongs to the pod"""
    return await db.pod_stages.find_one({"_id": stage_id, "pod_id": pod_id})

async def list_stages(
    db: AsyncIOMotorDatabase,
    page: int,
    limit: int,
    pod_id: Optional[ObjectId] = None,
    stage_type: Optional[str] = None,
) -> Tuple[List[dict], int]:
    """Stages by order, annotated with their pod's title and phase"""
    query = {}
    if pod_id:
        query["pod_id"] = pod_id
    if stage_type:
        query["type"] = stage_type

    stages, total = await _paginate(db.pod_stages, query, [("order", 1)], page, limit)

    pod_ids = list({stage["pod_id"] for stage in stages})
    pods = await db.pods.find(
        {"_id": {"$in": pod_ids}}, {"title": 1, "phase": 1}
    ).to_list(length=None)
    by_id = {pod["_id"]: pod for pod in pods}

    for stage in stages:
        pod = by_id.get(stage["pod_id"])
        if pod:
            stage["pod_title"] = pod.get("title")
            stage["pod_phase"] = pod.get("phase")

    return stages, total

async def update_stage(db: AsyncIOMotorDatabase, stage_id: ObjectId, updates: dict) -> Optional[dict]:
    updates["updated_at"] = utcnow()
    return await db.pod_stages.find_one_and_update(
        {"_id": stage_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )

async def delete_stage(db: AsyncIOMotorDatabase, stage_id: ObjectId) -> bool:
    result = await db.pod_stages.delete_one({"_id": stage_id})
    return result.deleted_count > 0
