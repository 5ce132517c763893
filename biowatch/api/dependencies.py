"""FastAPI dependency injection -- Depends() patterns using app.state from lifespan."""

from typing import Annotated

from fastapi import Depends, Request

from biowatch.config import Settings, get_settings
from biowatch.news.pipeline import NewsPipeline


def get_news_pipeline(request: Request) -> NewsPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = request.app.state.pipeline = NewsPipeline()
    return pipeline


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


# Type aliases for cleaner route signatures
Pipeline = Annotated[NewsPipeline, Depends(get_news_pipeline)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
