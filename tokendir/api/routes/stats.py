"""Stats routes - Pipeline cycle observability."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from tokendir.api.deps import get_pipeline
from tokendir.schemas.api import StatsResponse
from tokendir.services.pipeline import DirectoryPipeline

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=list[StatsResponse])
def get_cycle_stats(
    cycle: Optional[Literal["reconciliation", "overlay"]] = Query(None, description="Filter by cycle"),
    status: Optional[str] = Query(None, description="Filter by status (running, success, failure, skipped)"),
    limit: int = Query(10, ge=1, le=50, description="Number of runs to return"),
    pipeline: DirectoryPipeline = Depends(get_pipeline),
):
    """
    Get recent pipeline cycle runs.

    Shows records processed, status and the reason a cycle failed or was
    skipped, newest first.
    """
    runs = pipeline.recent_runs(cycle=cycle, limit=100)
    if status:
        runs = [run for run in runs if run.status == status]
    return [StatsResponse.model_validate(run) for run in runs[:limit]]
