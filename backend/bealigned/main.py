# /bealigned/main.py

import os
import time
import uvicorn
import asyncio
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from bealigned.config.settings import settings
from bealigned.routes import public, reflection
from bealigned.utils.lifecycle import lifespan
from bealigned.utils.metrics import response_time_histogram
from bealigned.utils.rate_limiter import limiter
from bealigned.utils.request_utils import get_remote_address
from bealigned.workflows.errors import FlowStateValidationError

log = structlog.get_logger(__name__)

# API docs are disabled in production
docs_prefix = f"/api/{settings.api_version}"
expose_docs = settings.environment != "production"

app = FastAPI(
    title="BeAligned Reflection Engine",
    version="1.0.0",
    description="Stateless seven-phase reflection dialogue engine",
    lifespan=lifespan,
    openapi_url=f"{docs_prefix}/openapi.json" if expose_docs else None,
    docs_url=f"{docs_prefix}/docs" if expose_docs else None,
    redoc_url=None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(FlowStateValidationError)
async def flow_state_error_handler(request: Request, exc: FlowStateValidationError):
    """Malformed caller state is rejected, never guessed at."""
    log.warning("flow_state_rejected", error=str(exc))
    return JSONResponse(
        status_code=422,
        content={"detail": {"message": str(exc), "errors": exc.errors}}
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SlowAPIMiddleware)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Binds per-request log context and records response time."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        path=request.url.path,
        client=get_remote_address(request),
    )
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response_time_histogram.labels(endpoint=request.url.path).observe(elapsed)
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    return response


@app.middleware("http")
async def timeout_middleware(request: Request, call_next):
    try:
        return await asyncio.wait_for(call_next(request), timeout=settings.request_timeout_seconds)
    except asyncio.TimeoutError:
        log.error("request_timed_out", timeout=settings.request_timeout_seconds)
        return JSONResponse({"detail": "Request timed out"}, status_code=504)


app.include_router(public.router)
app.include_router(reflection.router, prefix=f"/api/{settings.api_version}")


if __name__ == "__main__":
    uvicorn.run(
        "bealigned.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.environment == "development"
    )
