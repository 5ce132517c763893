"""Health check router -- service banner and config summary."""

from datetime import datetime, timezone

from fastapi import APIRouter

from biowatch import __version__
from biowatch.api.dependencies import AppSettings, Pipeline

router = APIRouter()


@router.get("/")
async def root():
    return {"service": "Biosimilar News Monitor API", "version": __version__}


@router.get("/health")
async def health(settings: AppSettings, pipeline: Pipeline):
    expander = pipeline.planner.expander
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "fetchers": {f.name: f.enabled for f in pipeline.fetchers},
        "ai_expansion": bool(expander is not None and expander.available),
        "config": {
            "mock_mode": settings.mock_mode,
            # Budget
            "search_deadline_seconds": settings.search_deadline_seconds,
            "fetch_timeout": settings.fetch_timeout,
            "fetch_concurrency": settings.fetch_concurrency,
            "default_max_items": settings.default_max_items,
            # Planner
            "planner_min_queries": settings.planner_min_queries,
            "planner_max_queries": settings.planner_max_queries,
            # Search services
            "searxng_enabled": settings.searxng_enabled,
            "searxng_url": settings.searxng_url if settings.searxng_enabled else None,
            "use_ddg": settings.use_ddg,
            "tavily_enabled": settings.tavily_enabled,
            "company_feeds_enabled": settings.company_feeds_enabled,
            "google_news_fallback": settings.google_news_fallback,
            "dedup_fold_titles": settings.dedup_fold_titles,
        },
    }
