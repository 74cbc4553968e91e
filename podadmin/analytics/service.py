"""
Analytics for the admin dashboard
Read-only; every dashboard runs its independent queries concurrently
"""

import asyncio
from datetime import timedelta
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from podadmin.analytics.models import (
    ActiveUsers, GrowthBucket, PodAnalytics, PodCompletion, ProblemAnalytics,
    ProblemCompletion, ProgressAnalytics, StageAnalytics, StageScores, UserAnalytics,
)
from podadmin.common import utcnow

MS_PER_MINUTE = 1000 * 60
MS_PER_HOUR = MS_PER_MINUTE * 60


def _rate(part: int, total: int) -> float:
    """Percentage rounded to 2 decimals, 0 when there is nothing to divide by"""
    if not total:
        return 0
    return round(part / total * 100, 2)

def _round(value: Optional[float]) -> Optional[float]:
    return round(value, 2) if value is not None else None

async def _distribution(collection, field: str) -> Dict[str, int]:
    """Count documents per value of field"""
    groups = await collection.aggregate([
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}}
    ]).to_list(length=None)
    return {str(item["_id"]): item["count"] for item in groups}

async def _titles(collection, ids: List, fields: Dict[str, int]) -> Dict:
    docs = await collection.find({"_id": {"$in": ids}}, fields).to_list(length=None)
    return {doc["_id"]: doc for doc in docs}

def _completed_count():
    return {"$sum": {"$cond": [{"$eq": ["$status", "completed"]}, 1, 0]}}


# ==================== USERS ====================

async def get_user_analytics(db: AsyncIOMotorDatabase) -> UserAnalytics:
    now = utcnow()
    seven_days_ago = now - timedelta(days=7)
    thirty_days_ago = now - timedelta(days=30)

    total_users, active_7_days, active_30_days, tier_distribution, growth = await asyncio.gather(
        db.user_profiles.count_documents({}),
        db.user_profiles.count_documents({"updated_at": {"$gte": seven_days_ago}}),
        db.user_profiles.count_documents({"updated_at": {"$gte": thirty_days_ago}}),
        _distribution(db.user_profiles, "subscription_tier"),
        db.user_profiles.aggregate([
            {"$match": {"created_at": {"$exists": True, "$ne": None}}},
            {
                "$group": {
                    "_id": {"year": {"$year": "$created_at"}, "month": {"$month": "$created_at"}},
                    "count": {"$sum": 1},
                }
            },
            {"$sort": {"_id.year": 1, "_id.month": 1}},
            {"$limit": 12},
        ]).to_list(length=None),
    )

    return UserAnalytics(
        total_users=total_users,
        active_users=ActiveUsers(last_7_days=active_7_days, last_30_days=active_30_days),
        user_growth=[
            GrowthBucket(year=item["_id"]["year"], month=item["_id"]["month"], count=item["count"])
            for item in growth
        ],
        tier_distribution=tier_distribution,
    )


# ==================== PROBLEMS ====================

async def get_problem_analytics(db: AsyncIOMotorDatabase) -> ProblemAnalytics:
    total_problems, public_problems, difficulty_distribution, attempt_stats = await asyncio.gather(
        db.problems.count_documents({}),
        db.problems.count_documents({"is_public": True}),
        _distribution(db.problems, "difficulty"),
        db.problem_attempts.aggregate([
            {
                "$group": {
                    "_id": "$problem_id",
                    "total_attempts": {"$sum": 1},
                    "completed_attempts": _completed_count(),
                }
            }
        ]).to_list(length=None),
    )

    problems = await _titles(db.problems, [s["_id"] for s in attempt_stats], {"slug": 1, "title": 1})

    completion_rates = []
    for stats in attempt_stats:
        problem = problems.get(stats["_id"])
        # attempts on deleted problems are not reported
        if not problem:
            continue
        completion_rates.append(ProblemCompletion(
            problem_id=str(stats["_id"]),
            problem_slug=problem.get("slug"),
            problem_title=problem.get("title"),
            total_attempts=stats["total_attempts"],
            completed_attempts=stats["completed_attempts"],
            completion_rate=_rate(stats["completed_attempts"], stats["total_attempts"]),
        ))

    return ProblemAnalytics(
        total_problems=total_problems,
        public_problems=public_problems,
        private_problems=total_problems - public_problems,
        difficulty_distribution=difficulty_distribution,
        completion_rates=completion_rates,
    )


# ==================== PODS ====================

async def get_pod_analytics(db: AsyncIOMotorDatabase) -> PodAnalytics:
    total_pods, phase_distribution, attempt_stats = await asyncio.gather(
        db.pods.count_documents({}),
        _distribution(db.pods, "phase"),
        db.pod_attempts.aggregate([
            {
                "$group": {
                    "_id": "$pod_id",
                    "total_attempts": {"$sum": 1},
                    "completed_attempts": _completed_count(),
                    "avg_time_spent": {
                        "$avg": {
                            "$cond": [
                                {"$and": [
                                    {"$ifNull": ["$completed_at", False]},
                                    {"$ifNull": ["$started_at", False]},
                                ]},
                                {"$divide": [{"$subtract": ["$completed_at", "$started_at"]}, MS_PER_MINUTE]},
                                0,
                            ]
                        }
                    },
                }
            }
        ]).to_list(length=None),
    )

    pods = await _titles(db.pods, [s["_id"] for s in attempt_stats], {"title": 1, "phase": 1})

    completion_rates = []
    for stats in attempt_stats:
        pod = pods.get(stats["_id"])
        if not pod:
            continue
        completion_rates.append(PodCompletion(
            pod_id=str(stats["_id"]),
            pod_title=pod.get("title"),
            pod_phase=pod.get("phase"),
            total_attempts=stats["total_attempts"],
            completed_attempts=stats["completed_attempts"],
            completion_rate=_rate(stats["completed_attempts"], stats["total_attempts"]),
            avg_time_spent=_round(stats.get("avg_time_spent")) or 0,
        ))

    avg_time_spent = 0
    if completion_rates:
        avg_time_spent = round(sum(item.avg_time_spent for item in completion_rates) / len(completion_rates), 2)

    return PodAnalytics(
        total_pods=total_pods,
        phase_distribution=phase_distribution,
        completion_rates=completion_rates,
        avg_time_spent=avg_time_spent,
    )


# ==================== STAGES ====================

async def get_stage_analytics(db: AsyncIOMotorDatabase) -> StageAnalytics:
    total_stages, type_distribution, progress_stats = await asyncio.gather(
        db.pod_stages.count_documents({}),
        _distribution(db.pod_stages, "type"),
        db.user_stage_progress.aggregate([
            {
                "$group": {
                    "_id": "$stage_id",
                    "total_attempts": {"$sum": 1},
                    "completed_attempts": _completed_count(),
                    "avg_assessment_score": {"$avg": "$assessment_score"},
                    "avg_time_spent": {"$avg": "$time_spent"},
                }
            }
        ]).to_list(length=None),
    )

    stages = await _titles(db.pod_stages, [s["_id"] for s in progress_stats], {"title": 1, "type": 1})

    assessment_scores = []
    for stats in progress_stats:
        stage = stages.get(stats["_id"])
        if not stage:
            continue
        assessment_scores.append(StageScores(
            stage_id=str(stats["_id"]),
            stage_title=stage.get("title"),
            stage_type=stage.get("type"),
            total_attempts=stats["total_attempts"],
            completed_attempts=stats["completed_attempts"],
            completion_rate=_rate(stats["completed_attempts"], stats["total_attempts"]),
            avg_assessment_score=_round(stats.get("avg_assessment_score")),
            avg_time_spent=_round(stats.get("avg_time_spent")) or 0,
        ))

    return StageAnalytics(
        total_stages=total_stages,
        type_distribution=type_distribution,
        assessment_scores=assessment_scores,
    )


# ==================== PROGRESS ====================

async def get_progress_analytics(db: AsyncIOMotorDatabase) -> ProgressAnalytics:
    total_attempts, completed_attempts, abandoned_attempts, duration_stats = await asyncio.gather(
        db.problem_attempts.count_documents({}),
        db.problem_attempts.count_documents({"status": "completed"}),
        db.problem_attempts.count_documents({"status": "abandoned"}),
        db.problem_attempts.aggregate([
            {"$match": {"completed_at": {"$ne": None}, "started_at": {"$ne": None}}},
            {
                "$group": {
                    "_id": None,
                    "avg_completion_time": {
                        "$avg": {"$divide": [{"$subtract": ["$completed_at", "$started_at"]}, MS_PER_HOUR]}
                    },
                }
            },
        ]).to_list(length=1),
    )

    avg_completion_time = duration_stats[0].get("avg_completion_time") if duration_stats else None

    return ProgressAnalytics(
        completion_rate=_rate(completed_attempts, total_attempts),
        abandonment_rate=_rate(abandoned_attempts, total_attempts),
        avg_completion_time=_round(avg_completion_time) or 0,
        active_attempts=total_attempts - completed_attempts - abandoned_attempts,
        abandoned_attempts=abandoned_attempts,
    )
