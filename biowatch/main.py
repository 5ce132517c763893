"""
Biosimilar News Monitor - Main Entry Point.
FastAPI server and CLI interface.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from . import __version__
from .api import health_router, search_router
from .config import get_settings
from .exceptions import ValidationFailure
from .news.pipeline import NewsPipeline
from .schemas import SearchRequest

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# Suppress noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

GENERIC_ERROR = "Unable to gather news results."


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.settings = settings
    if getattr(app.state, "pipeline", None) is None:
        app.state.pipeline = NewsPipeline(settings=settings)
    fetchers = ", ".join(f"{f.name}={'on' if f.enabled else 'off'}" for f in app.state.pipeline.fetchers)
    logger.info(f"Starting Biosimilar News Monitor ({fetchers}; mock_mode={settings.mock_mode})")
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Biosimilar News Monitor",
    description="Keyword- and company-driven biosimilar industry news gathering with dedup and scoring",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(search_router)


def _first_error(exc) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    err = errors[0]
    loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
    msg = err.get("msg", "invalid value")
    return f"Invalid request: {loc}: {msg}" if loc else f"Invalid request: {msg}"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected request: {exc.errors()[:3]}")
    return JSONResponse(status_code=400, content={"error": _first_error(exc)})


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    logger.info(f"Rejected request: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"News search failed: {exc}")
    return JSONResponse(status_code=500, content={"error": GENERIC_ERROR})


# CLI Runner
async def run_request_file(path: str) -> list:
    """Run one monitoring cycle from a JSON request file."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    request = SearchRequest.model_validate(payload)
    items = await NewsPipeline().gather_news(request)
    return [item.model_dump(by_alias=True, mode="json") for item in items]


def cli_main(argv=None):
    """Command-line interface for the monitor."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Biosimilar News Monitor"
    )
    parser.add_argument(
        "--server",
        action="store_true",
        help="Start the FastAPI server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Server port (default: 8000)"
    )
    parser.add_argument(
        "--request",
        metavar="FILE",
        help="Run one search from a JSON SearchRequest file and print the results"
    )

    args = parser.parse_args(argv)

    if args.server:
        import uvicorn
        logger.info(f"Starting server on port {args.port}...")
        uvicorn.run(app, host="0.0.0.0", port=args.port)
    elif args.request:
        try:
            results = asyncio.run(run_request_file(args.request))
        except (ValidationError, ValidationFailure) as e:
            logger.error(f"Invalid request file {args.request}: {e}")
            return 2
        print(json.dumps({"results": results}, indent=2, ensure_ascii=False))
    else:
        parser.print_help()
    return 0


def main():
    """Entry point for CLI."""
    raise SystemExit(cli_main())


if __name__ == "__main__":
    main()
