"""Search router -- POST /api/search runs one monitoring cycle.

Error contract (the dashboard only reads `error`):
  400 {"error": "..."}                             bad body / nothing to search
  500 {"error": "Unable to gather news results."}  anything else (details in server log)
"""

import logging

from fastapi import APIRouter

from biowatch.api.dependencies import Pipeline
from biowatch.api.schemas import ErrorResponse, SearchResponse
from biowatch.schemas import SearchRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/api/search",
    response_model=SearchResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def search_news(body: SearchRequest, pipeline: Pipeline):
    # Unusable rows/targets are dropped here; the pipeline filters again
    request = body.model_copy(update={
        "keywords": body.usable_keywords(),
        "company_targets": body.usable_targets(),
    })
    results = await pipeline.gather_news(request)
    return SearchResponse(results=results)
