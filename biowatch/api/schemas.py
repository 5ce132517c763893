"""API response schemas -- shaped for the dashboard's fetch('/api/search') call."""

from typing import List

from pydantic import BaseModel, Field

from biowatch.schemas import ConsolidatedNewsItem


class SearchResponse(BaseModel):
    results: List[ConsolidatedNewsItem] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
