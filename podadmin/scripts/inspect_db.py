"""
Print the problem -> pod reference report for the configured database

    python -m podadmin.scripts.inspect_db
"""

import asyncio
import logging
import sys

from podadmin.config import load_settings
from podadmin.content.consistency import HierarchyReport, inspect_hierarchy
from podadmin.database import DatabaseManager

logger = logging.getLogger(__name__)


def print_report(report: HierarchyReport):
    for problem in report.problems:
        print(f"\nProblem: {problem.title} ({problem.slug})")
        print(f"  id: {problem.problem_id}")
        print(f"  pods referenced: {len(problem.referenced_pod_ids)}")
        print(f"  pods found: {len(problem.actual_pod_ids)}")
        for pod_id in problem.unreferenced_pod_ids:
            print(f"  ! pod {pod_id} points here but is not listed")
        for pod_id in problem.dangling_pod_ids:
            print(f"  ! listed pod {pod_id} does not point here")

    print(f"\nTotal pods: {report.total_pods}")
    for pod_id in report.orphaned_pod_ids:
        print(f"! pod {pod_id} belongs to a missing problem")
    print(f"Orphaned stages: {report.orphaned_stage_count}")
    print("Consistent" if report.consistent else "Inconsistencies found")


async def main() -> int:
    settings = load_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    manager = DatabaseManager(settings)
    manager.connect()
    try:
        report = await inspect_hierarchy(manager.get_database())
    finally:
        manager.disconnect()

    print_report(report)
    return 0 if report.consistent else 1


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
