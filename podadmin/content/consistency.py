"""
Hierarchy consistency report

Pod creation and deletion touch the pod and its problem in separate writes,
and problem deletion may leave stages behind. This report shows where the
stored references and the actual documents have drifted apart.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


@dataclass
class ProblemConsistency:
    problem_id: str
    slug: str
    title: str
    referenced_pod_ids: List[str] = field(default_factory=list)
    actual_pod_ids: List[str] = field(default_factory=list)
    # pods pointing at the problem that the problem does not list
    unreferenced_pod_ids: List[str] = field(default_factory=list)
    # pod ids the problem lists that no longer point back at it
    dangling_pod_ids: List[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.unreferenced_pod_ids and not self.dangling_pod_ids


@dataclass
class HierarchyReport:
    problems: List[ProblemConsistency] = field(default_factory=list)
    total_pods: int = 0
    orphaned_pod_ids: List[str] = field(default_factory=list)
    orphaned_stage_count: int = 0

    @property
    def consistent(self) -> bool:
        return (
            all(problem.consistent for problem in self.problems)
            and not self.orphaned_pod_ids
            and self.orphaned_stage_count == 0
        )


async def inspect_hierarchy(db: AsyncIOMotorDatabase) -> HierarchyReport:
    problems = await db.problems.find({}, {"slug": 1, "title": 1, "pods": 1}).to_list(length=None)
    pods = await db.pods.find({}, {"problem_id": 1}).to_list(length=None)

    pods_by_problem = {}
    for pod in pods:
        pods_by_problem.setdefault(pod.get("problem_id"), []).append(pod["_id"])

    report = HierarchyReport(total_pods=len(pods))
    problem_ids = set()

    for problem in problems:
        problem_ids.add(problem["_id"])
        referenced = [ref.get("pod_id") for ref in problem.get("pods", [])]
        actual = pods_by_problem.get(problem["_id"], [])

        entry = ProblemConsistency(
            problem_id=str(problem["_id"]),
            slug=problem.get("slug", ""),
            title=problem.get("title", ""),
            referenced_pod_ids=[str(pod_id) for pod_id in referenced],
            actual_pod_ids=[str(pod_id) for pod_id in actual],
            unreferenced_pod_ids=[str(pod_id) for pod_id in actual if pod_id not in referenced],
            dangling_pod_ids=[str(pod_id) for pod_id in referenced if pod_id not in actual],
        )
        if not entry.consistent:
            logger.warning(
                "Pod references out of sync for problem %s: %d unreferenced, %d dangling",
                entry.slug, len(entry.unreferenced_pod_ids), len(entry.dangling_pod_ids),
            )
        report.problems.append(entry)

    report.orphaned_pod_ids = [
        str(pod["_id"]) for pod in pods if pod.get("problem_id") not in problem_ids
    ]

    pod_ids: List[ObjectId] = [pod["_id"] for pod in pods]
    report.orphaned_stage_count = await db.pod_stages.count_documents({"pod_id": {"$nin": pod_ids}})
    if report.orphaned_stage_count:
        logger.warning("%d stages reference a pod that no longer exists", report.orphaned_stage_count)

    return report
