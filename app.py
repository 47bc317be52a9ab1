import hmac
import logging
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()  # Load .env file before importing settings

from fastapi import FastAPI, BackgroundTasks, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded

from core.config import settings
from core.rate_limiter import limiter, rate_limit_exceeded_handler, RateLimits
from src.schedule_bc.schedule.domain.errors import QueryValidationError
from src.schedule_bc.schedule.infrastructure.refresh_scheduler import (
    lifespan_with_scheduler,
    schedule_scheduler,
)
from src.schedule_bc.schedule.infrastructure.schedule_store import ScheduleStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


async def query_validation_error_handler(request: Request, exc: QueryValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": str(exc), "missing": exc.missing},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Metro Schedule API",
        description="Next trains on the metro line from the static GTFS timetable",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan_with_scheduler,
    )

    # CORS middleware - Public API, no credentials needed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(QueryValidationError, query_validation_error_handler)

    from adapters.http.api.metro.routers import schedule_router, realtime_router
    app.include_router(schedule_router)
    app.include_router(realtime_router)

    @app.get("/health")
    @limiter.limit(RateLimits.HEALTH)
    async def health_check(request: Request):
        """Health check endpoint.

        Returns 503 until the first schedule snapshot is loaded.
        """
        store = ScheduleStore.get_instance()

        if not store.is_loaded:
            return JSONResponse(
                status_code=503,
                content={
                    "status": "loading",
                    "message": "Static GTFS schedule is not loaded yet"
                }
            )

        return {
            "status": "healthy",
            "schedule": {
                "loaded": True,
                "last_update": store.last_update.isoformat(),
                "stats": store.stats,
            }
        }

    @app.post("/admin/reload-gtfs")
    @limiter.limit(RateLimits.ADMIN_RELOAD)
    async def reload_gtfs(
        request: Request,
        background_tasks: BackgroundTasks,
        x_admin_token: str = Header(None, alias="X-Admin-Token")
    ):
        """Rebuild the schedule snapshot without restarting the server.

        The current snapshot keeps serving requests until the new one is
        complete. Requires X-Admin-Token header for authentication.
        """
        if not x_admin_token or not settings.ADMIN_TOKEN:
            raise HTTPException(status_code=401, detail="Unauthorized: Missing admin token")
        if not hmac.compare_digest(settings.ADMIN_TOKEN, x_admin_token):
            raise HTTPException(status_code=401, detail="Unauthorized: Invalid admin token")

        background_tasks.add_task(schedule_scheduler.trigger)

        return {
            "status": "reload_initiated",
            "message": "Static GTFS reload started in background"
        }

    # Web client; mounted last so /api routes take precedence
    public_dir = Path(__file__).parent / "public"
    if public_dir.exists():
        app.mount("/", StaticFiles(directory=str(public_dir), html=True), name="public")

    return app


app = create_app()
