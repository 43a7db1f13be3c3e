import asyncio
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
import structlog
from fastapi import FastAPI, Response

from app.config import settings
from app.dependencies import get_trending_refresher
from app.exceptions import register_exception_handlers
from app.logging_config import configure_logging
from app.metrics import metrics_endpoint
from app.middleware.logging_middleware import RequestLoggingMiddleware
from app.routers import articles, tags, users
from app.worker.trending_worker import trending_worker_loop

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure structured logging before anything else
    configure_logging()

    # Startup: create Redis connection and store on app.state
    app.state.redis = aioredis.from_url(
        settings.redis_url, encoding="utf-8", decode_responses=True
    )

    app.state.trending_worker_task = None
    if settings.trending_refresh_interval_minutes > 0:
        app.state.trending_worker_task = asyncio.create_task(
            trending_worker_loop(
                get_trending_refresher(), settings.trending_refresh_interval_minutes
            )
        )
    else:
        log.info("trending_worker_disabled")
    try:
        yield
    finally:
        if app.state.trending_worker_task is not None:
            app.state.trending_worker_task.cancel()
        # Shutdown: close Redis connection
        await app.state.redis.aclose()


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

# Register request logging middleware (runs on every request)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(users.router)
app.include_router(articles.router)
app.include_router(tags.router)

# Prometheus metrics endpoint
app.get("/metrics")(metrics_endpoint)


@app.get("/health")
async def health_check(response: Response):
    """Health check covering the database, Redis and the trending worker.

    Returns 200 if all components are healthy, 503 if any component is unhealthy.

    Checks:
    - PostgreSQL connectivity
    - Redis connectivity
    - Trending worker status (skipped when the worker is disabled)
    """
    from app.database import async_session_factory
    from sqlalchemy import text

    checks = {}
    overall_healthy = True

    try:
        async with async_session_factory() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy"}
    except Exception as e:
        checks["database"] = {"status": "unhealthy", "error": str(e)}
        overall_healthy = False

    try:
        await app.state.redis.ping()
        checks["redis"] = {"status": "healthy"}
    except Exception as e:
        checks["redis"] = {"status": "unhealthy", "error": str(e)}
        overall_healthy = False

    try:
        worker = app.state.trending_worker_task
        if worker is None:
            checks["trending_worker"] = {"status": "disabled"}
        elif worker.done() or worker.cancelled():
            checks["trending_worker"] = {
                "status": "unhealthy",
                "error": "Worker task stopped",
            }
            overall_healthy = False
        else:
            checks["trending_worker"] = {"status": "healthy"}
    except AttributeError:
        checks["trending_worker"] = {
            "status": "unhealthy",
            "error": "Worker not initialized",
        }
        overall_healthy = False

    response.status_code = 200 if overall_healthy else 503
    return {"status": "healthy" if overall_healthy else "unhealthy", "checks": checks}
