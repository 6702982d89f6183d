"""Health routes - Directory freshness and readiness checks."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response

from tokendir.api.deps import get_pipeline, get_store, get_ticker_cache
from tokendir.core.config import settings
from tokendir.ingestion.tickers import TickerCache
from tokendir.schemas.api import HealthResponse
from tokendir.services.pipeline import DirectoryPipeline
from tokendir.services.store import DirectoryStore

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health(
    store: DirectoryStore = Depends(get_store),
    pipeline: DirectoryPipeline = Depends(get_pipeline),
    tickers: TickerCache = Depends(get_ticker_cache),
):
    """
    Health check endpoint for load balancer and Docker health checks.

    Reports the published directory version and age, the last reconciliation
    status and which exchanges currently have fresh tickers. A directory older
    than three reconciliation intervals is reported as "stale".
    """
    directory = store.current()
    last_run = pipeline.last_run("reconciliation")
    fresh = tickers.fresh_exchanges()
    ages = {exchange_id: round(tickers.age(exchange_id), 3) for exchange_id in fresh}

    if directory is None:
        return HealthResponse(
            status="empty",
            last_reconciliation_status=last_run.status if last_run else None,
            fresh_ticker_exchanges=fresh,
            ticker_age_seconds=ages,
        )

    age = (datetime.now(timezone.utc) - directory.published_at).total_seconds()
    status = "stale" if age > 3 * settings.RECONCILE_INTERVAL_SECONDS else "ok"
    return HealthResponse(
        status=status,
        directory_version=directory.version,
        published_at=directory.published_at,
        prices_updated_at=directory.prices_updated_at,
        age_seconds=round(age, 3),
        tokens=len(directory.all_tokens),
        last_reconciliation_status=last_run.status if last_run else None,
        fresh_ticker_exchanges=fresh,
        ticker_age_seconds=ages,
    )


@router.get("/ready")
def readiness(response: Response, store: DirectoryStore = Depends(get_store)):
    """
    Readiness check: 200 once a directory is published, 503 before that.
    """
    directory = store.current()
    now = datetime.now(timezone.utc).isoformat()
    if directory is None:
        response.status_code = 503
        return {"status": "not_ready", "error": "no directory published", "timestamp": now}
    return {"status": "ready", "version": directory.version, "timestamp": now}
