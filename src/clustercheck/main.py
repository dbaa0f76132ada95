"""
FastAPI application entry point.

Mounts the health and override routers, maps QueryFailure to HTTP 500 and
exposes Prometheus metrics when enabled.
"""

import logging
import time

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from slowapi.errors import RateLimitExceeded

from clustercheck.core.auth import verify_token
from clustercheck.core.config import settings
from clustercheck.core.engine import QueryFailure
from clustercheck.core.log import configure_logging
from clustercheck.core.metrics import count_check, init_metrics, metrics_exposition
from clustercheck.routers import admin, health

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Galera Cluster Check",
    description="Load balancer health check for Galera cluster nodes",
    version="1.0.0",
)

app.state.limiter = admin.limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return PlainTextResponse(
        f"Rate limit exceeded: {exc.detail}\n",
        status_code=429,
        headers={"Retry-After": "60"},
    )


@app.exception_handler(QueryFailure)
async def query_failure_handler(request: Request, exc: QueryFailure):
    """The database could not be asked: 500, so it pages instead of draining."""
    client = request.client.host if request.client else "-"
    logger.error("%s %s", client, exc)
    count_check(request.url.path, "query-failure", 500)
    return PlainTextResponse(f"{exc}\n", status_code=500)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            "%s %s failed after %dms: %s",
            request.method, request.url.path, int((time.time() - start) * 1000), e,
        )
        raise
    logger.debug(
        "%s %s %d %dms",
        request.method, request.url.path, response.status_code, int((time.time() - start) * 1000),
    )
    return response


# Initialize metrics once on startup
init_metrics()


@app.on_event("startup")
async def startup_event():
    configure_logging()
    # uvicorn may import this module directly, bypassing the CLI checks
    settings.validate()
    logger.info(
        "Listening... donor=%s readonly=%s requiremaster=%s overrides=%s",
        settings.AVAILABLE_WHEN_DONOR,
        settings.AVAILABLE_WHEN_READONLY,
        settings.REQUIRE_MASTER,
        settings.OVERRIDE_BACKEND,
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Release pooled connections."""
    checker = getattr(app.state, "checker", None)
    dispose = getattr(getattr(checker, "source", None), "dispose", None)
    if dispose is not None:
        await dispose()


@app.get("/metrics")
async def metrics():
    if not settings.METRICS_ENABLED:
        return Response(status_code=404)
    data, content_type = metrics_exposition()
    return Response(content=data, media_type=content_type)


# Health endpoints are public (polled by the load balancer)
app.include_router(health.router, tags=["health"])

# Override endpoints (verify_token checks AUTH_ENABLED dynamically)
app.include_router(admin.router, tags=["override"], dependencies=[Depends(verify_token)])
