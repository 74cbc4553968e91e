"""
Stage progress state machine

Per-user progress lives in three layers: a ProblemAttempt per (user, problem),
a PodAttempt per (user, pod) under it, and a UserStageProgress per
(pod attempt, stage). Starting a stage creates whatever layers are missing.

Stage status only moves forward: locked -> in_progress -> completed.
"""

import logging
from typing import List, Optional

from bson import ObjectId
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from podadmin.common import utcnow
from podadmin.content import database as content_db
from podadmin.content.content_store import ContentFileStore
from podadmin.content.models import MCQQuestion, Pod, PodStage
from podadmin.progress.models import (
    AssessmentResult, AssessmentSubmission, PodAttemptStatus, PodStages,
    PracticeResult, PracticeSubmission, ProblemAttemptStatus, StageComplete,
    StageDetail, StageProgressUpdate, StageStatus, StageWithProgress, UserStageProgress,
)

logger = logging.getLogger(__name__)


# ==================== HELPERS ====================

async def _find_or_create(collection: AsyncIOMotorCollection, query: dict, defaults: dict) -> dict:
    """
    Return the document matching query, inserting query + defaults if none exists

    A single conditional upsert, so repeated calls never create a second
    record. If a concurrent request wins the insert the unique index rejects
    ours and the winner is read back once.
    """
    try:
        return await collection.find_one_and_update(
            query,
            {"$setOnInsert": defaults},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        existing = await collection.find_one(query)
        if existing is None:
            raise
        return existing

async def _require_stage(db: AsyncIOMotorDatabase, pod_id: ObjectId, stage_id: ObjectId) -> PodStage:
    doc = await content_db.get_stage_in_pod(db, pod_id, stage_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Stage not found")
    return PodStage.model_validate(doc)

async def _latest_progress(db: AsyncIOMotorDatabase, user_id: str, stage_id: ObjectId) -> Optional[dict]:
    """Most recent progress record for the stage across the user's pod attempts"""
    return await db.user_stage_progress.find_one(
        {"user_id": user_id, "stage_id": stage_id},
        sort=[("created_at", -1)],
    )

async def _require_progress(db: AsyncIOMotorDatabase, user_id: str, stage_id: ObjectId) -> dict:
    progress = await _latest_progress(db, user_id, stage_id)
    if not progress:
        raise HTTPException(status_code=404, detail="Stage progress not found")
    return progress

async def _record_attempt(
    db: AsyncIOMotorDatabase,
    progress: dict,
    array_field: str,
    key_field: str,
    new_entry: dict,
    set_fields: dict,
    inc_fields: Optional[dict] = None,
):
    """
    Update the array entry whose key_field matches new_entry, or append new_entry

    The append is guarded on the key being absent, so two racing first
    submissions cannot both append; the loser falls through to the in-place update.
    """
    key = new_entry[key_field]
    now = utcnow()
    collection = db.user_stage_progress

    exists = any(entry.get(key_field) == key for entry in progress.get(array_field, []))
    if not exists:
        result = await collection.update_one(
            {"_id": progress["_id"], f"{array_field}.{key_field}": {"$ne": key}},
            {"$push": {array_field: new_entry}, "$set": {"updated_at": now}},
        )
        if result.modified_count:
            return

    update = {
        "$set": {
            **{f"{array_field}.$.{field}": value for field, value in set_fields.items()},
            "updated_at": now,
        }
    }
    if inc_fields:
        update["$inc"] = {f"{array_field}.$.{field}": value for field, value in inc_fields.items()}

    await collection.update_one({"_id": progress["_id"], f"{array_field}.{key_field}": key}, update)

def check_practice_answer(user_answer: str, solution: Optional[str]) -> bool:
    """Case- and surrounding-whitespace-insensitive comparison; no solution means never correct"""
    if solution is None:
        return False
    return user_answer.strip().lower() == solution.strip().lower()

def find_question(stage: PodStage, question_id: str) -> Optional[MCQQuestion]:
    for question in [*stage.content.mcqs, *stage.content.assessment_questions]:
        if question.id == question_id:
            return question
    return None


# ==================== TRANSITIONS ====================

async def start_stage(db: AsyncIOMotorDatabase, user_id: str, pod_id: ObjectId, stage_id: ObjectId) -> UserStageProgress:
    """
    Start (or resume) a stage for the user

    Each layer is its own write; a failure part-way leaves the earlier
    layers in place and a retry picks them up.
    """
    await _require_stage(db, pod_id, stage_id)

    pod = await content_db.get_pod(db, pod_id)
    if not pod:
        raise HTTPException(status_code=404, detail="Pod not found")

    now = utcnow()

    problem_attempt = await _find_or_create(
        db.problem_attempts,
        {"user_id": user_id, "problem_id": pod["problem_id"], "status": ProblemAttemptStatus.ACTIVE.value},
        {"started_at": now, "completed_at": None, "created_at": now, "updated_at": now},
    )

    pod_attempt = await _find_or_create(
        db.pod_attempts,
        {"user_id": user_id, "pod_id": pod_id, "status": PodAttemptStatus.ACTIVE.value},
        {
            "problem_attempt_id": problem_attempt["_id"],
            "started_at": now,
            "submitted_at": None,
            "completed_at": None,
            "created_at": now,
            "updated_at": now,
        },
    )

    progress = await _find_or_create(
        db.user_stage_progress,
        {"user_id": user_id, "stage_id": stage_id, "pod_attempt_id": pod_attempt["_id"]},
        {
            "status": StageStatus.IN_PROGRESS.value,
            "started_at": now,
            "completed_at": None,
            "time_spent": 0,
            "practice_problem_attempts": [],
            "mcq_attempts": [],
            "resources_viewed": [],
            "case_studies_viewed": [],
            "max_assessment_score": 100,
            "created_at": now,
            "updated_at": now,
        },
    )

    if progress["status"] == StageStatus.LOCKED.value:
        unlocked = await db.user_stage_progress.find_one_and_update(
            {"_id": progress["_id"], "status": StageStatus.LOCKED.value},
            {"$set": {"status": StageStatus.IN_PROGRESS.value, "started_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        progress = unlocked or await db.user_stage_progress.find_one({"_id": progress["_id"]})

    logger.info("User %s started stage %s (pod attempt %s)", user_id, stage_id, pod_attempt["_id"])
    return UserStageProgress.model_validate(progress)

async def complete_stage(
    db: AsyncIOMotorDatabase,
    user_id: str,
    pod_id: ObjectId,
    stage_id: ObjectId,
    payload: StageComplete,
) -> UserStageProgress:
    await _require_stage(db, pod_id, stage_id)
    progress = await _require_progress(db, user_id, stage_id)

    now = utcnow()
    updates = {
        "status": StageStatus.COMPLETED.value,
        "completed_at": now,
        "updated_at": now,
    }
    if payload.assessment_score is not None:
        updates["assessment_score"] = payload.assessment_score
    if payload.notes:
        updates["notes"] = payload.notes

    completed = await db.user_stage_progress.find_one_and_update(
        {"_id": progress["_id"]},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    logger.info("User %s completed stage %s", user_id, stage_id)
    return UserStageProgress.model_validate(completed)

async def update_progress(
    db: AsyncIOMotorDatabase,
    user_id: str,
    stage_id: ObjectId,
    patch: StageProgressUpdate,
) -> UserStageProgress:
    """Merge the provided fields; status is never touched here"""
    progress = await _require_progress(db, user_id, stage_id)

    now = utcnow()
    updates = patch.model_dump(exclude_none=True)
    updates["last_accessed_at"] = now
    updates["updated_at"] = now

    updated = await db.user_stage_progress.find_one_and_update(
        {"_id": progress["_id"]},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return UserStageProgress.model_validate(updated)

async def submit_practice(
    db: AsyncIOMotorDatabase,
    user_id: str,
    pod_id: ObjectId,
    stage_id: ObjectId,
    submission: PracticeSubmission,
) -> PracticeResult:
    stage = await _require_stage(db, pod_id, stage_id)

    problem = next(
        (p for p in stage.content.practice_problems if p.id == submission.problem_id), None
    )
    if not problem:
        raise HTTPException(status_code=404, detail="Practice problem not found")

    is_correct = check_practice_answer(submission.user_answer, problem.solution)
    progress = await _require_progress(db, user_id, stage_id)

    now = utcnow()
    set_fields = {
        "user_answer": submission.user_answer,
        "is_correct": is_correct,
        "completed_at": now,
    }
    if submission.time_spent:
        set_fields["time_spent"] = submission.time_spent

    await _record_attempt(
        db,
        progress,
        "practice_problem_attempts",
        "problem_id",
        new_entry={
            "problem_id": submission.problem_id,
            "user_answer": submission.user_answer,
            "is_correct": is_correct,
            "attempts": 1,
            "time_spent": submission.time_spent or 0,
            "completed_at": now,
        },
        set_fields=set_fields,
        inc_fields={"attempts": 1},
    )

    return PracticeResult(
        is_correct=is_correct,
        solution=problem.solution if is_correct else None,
        message="Correct answer!" if is_correct else "Incorrect answer. Try again!",
    )

async def submit_assessment(
    db: AsyncIOMotorDatabase,
    user_id: str,
    pod_id: ObjectId,
    stage_id: ObjectId,
    submission: AssessmentSubmission,
) -> AssessmentResult:
    stage = await _require_stage(db, pod_id, stage_id)

    question = find_question(stage, submission.question_id)
    if not question:
        raise HTTPException(status_code=404, detail="MCQ question not found")

    selected = next((o for o in question.options if o.id == submission.selected_option_id), None)
    if not selected:
        raise HTTPException(status_code=404, detail="Selected option not found")

    is_correct = selected.is_correct
    progress = await _require_progress(db, user_id, stage_id)

    now = utcnow()
    set_fields = {
        "selected_option_id": submission.selected_option_id,
        "is_correct": is_correct,
        "completed_at": now,
    }
    if submission.time_spent:
        set_fields["time_spent"] = submission.time_spent

    await _record_attempt(
        db,
        progress,
        "mcq_attempts",
        "question_id",
        new_entry={
            "question_id": submission.question_id,
            "selected_option_id": submission.selected_option_id,
            "is_correct": is_correct,
            "time_spent": submission.time_spent or 0,
            "completed_at": now,
        },
        set_fields=set_fields,
    )

    if is_correct:
        return AssessmentResult(is_correct=True, explanation=question.explanation)

    correct = next((o for o in question.options if o.is_correct), None)
    return AssessmentResult(is_correct=False, correct_option=correct.id if correct else None)


# ==================== READ SIDE ====================

async def list_pod_stages(db: AsyncIOMotorDatabase, user_id: str, pod_id: ObjectId) -> PodStages:
    """Pod with its stages in order, each carrying the user's progress or None"""
    pod = await content_db.get_pod(db, pod_id)
    if not pod:
        raise HTTPException(status_code=404, detail="Pod not found")

    stages = await db.pod_stages.find({"pod_id": pod_id}).sort("order", 1).to_list(length=None)
    progress_docs = await db.user_stage_progress.find(
        {"user_id": user_id, "stage_id": {"$in": [stage["_id"] for stage in stages]}}
    ).sort("created_at", 1).to_list(length=None)

    # later records win
    progress_by_stage = {doc["stage_id"]: doc for doc in progress_docs}

    items: List[StageWithProgress] = [
        StageWithProgress.model_validate({**stage, "user_progress": progress_by_stage.get(stage["_id"])})
        for stage in stages
    ]
    return PodStages(pod=Pod.model_validate(pod), stages=items)

async def get_stage_detail(
    db: AsyncIOMotorDatabase,
    store: ContentFileStore,
    user_id: str,
    pod_id: ObjectId,
    stage_id: ObjectId,
) -> StageDetail:
    stage = await content_db.get_stage_in_pod(db, pod_id, stage_id)
    if not stage:
        raise HTTPException(status_code=404, detail="Stage not found")

    progress = await _latest_progress(db, user_id, stage_id)
    pod = await content_db.get_pod(db, pod_id)
    external_content = store.read(pod.get("content_file_path")) if pod else None

    return StageDetail.model_validate({
        **stage,
        "user_progress": progress,
        "external_content": external_content,
    })
