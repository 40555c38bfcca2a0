"""
Scheduler Monitoring Router

Provides endpoints to monitor scheduled job health and to force a cleanup.
"""

from typing import Dict

from fastapi import APIRouter, Depends

from matchmaker.dependencies import ServiceContainer, get_container


router = APIRouter()


@router.get("/scheduler/status")
async def get_scheduler_status(
    container: ServiceContainer = Depends(get_container)
) -> Dict:
    """
    Get the status of all scheduled jobs.

    Returns job execution metrics including:
    - Execution count
    - Failure count
    - Last execution time
    - Last error (if any)
    """
    job_statuses = (
        container.match_scheduler.status() + container.cleanup_scheduler.status()
    )

    # Calculate overall health
    unhealthy_jobs = [j for j in job_statuses if j["health"] == "unhealthy"]
    overall_health = "unhealthy" if unhealthy_jobs else "healthy"

    return {
        "overall_health": overall_health,
        "match_scheduler_running": container.match_scheduler.is_running(),
        "cleanup_scheduler_running": container.cleanup_scheduler.is_running(),
        "jobs": job_statuses,
        "unhealthy_jobs": len(unhealthy_jobs),
        "total_jobs": len(job_statuses),
    }


@router.post("/scheduler/cleanup")
async def force_cleanup(
    container: ServiceContainer = Depends(get_container)
) -> Dict:
    """Run one cleanup sweep immediately."""
    result = await container.cleanup_scheduler.force_cleanup()
    return {"success": True, "result": result}
