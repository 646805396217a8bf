"""
Credscore — Score API service

Start with:
    uvicorn credscore.main:app --host 0.0.0.0 --port 8000
"""
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from credscore import __version__
from credscore.api.score import router as score_router
from credscore.errors import NotFoundError
from credscore.log import configure_logging

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("credscore_starting", version=__version__)

    try:
        from credscore.clients.neo4j import init_schema
        await init_schema()
    except Exception as e:
        logger.warning("neo4j_init_failed", error=str(e))

    # a bad score configuration stops startup
    from credscore.pipeline import get_engine, shutdown
    get_engine()

    yield

    await shutdown()
    logger.info("credscore_stopped")


app = FastAPI(
    title="Credscore",
    description="Credibility scores for wallet addresses, profiles and linked social accounts.",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def request_middleware(request: Request, call_next):
    request_id = str(uuid.uuid4())[:8]
    start = time.time()
    request.state.request_id = request_id
    with structlog.contextvars.bound_contextvars(request_id=request_id):
        response = await call_next(request)
        duration_ms = round((time.time() - start) * 1000, 2)
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        if request.url.path != "/health":
            logger.info("request",
                        method=request.method,
                        path=request.url.path,
                        status=response.status_code,
                        duration_ms=duration_ms)
    return response


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": "not_found", "message": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception",
                 path=request.url.path,
                 error=str(exc),
                 type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "Something went wrong.",
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    )


app.include_router(score_router)


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "service": "credscore",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
