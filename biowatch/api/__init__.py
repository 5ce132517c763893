# API module - FastAPI routers
from .health import router as health_router
from .search import router as search_router

__all__ = ["health_router", "search_router"]
