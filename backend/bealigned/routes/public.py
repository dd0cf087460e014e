# /bealigned/routes/public.py

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest

from bealigned.config.settings import settings
from bealigned.models.api import APIResponse
from bealigned.services.ai_service import ai_service
from bealigned.utils.dependencies import verify_metrics_access

# Public endpoints that do not belong to the reflection API: root, health
# probes and the (optionally API-key protected) Prometheus metrics.

router = APIRouter()

@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "BeAligned Reflection Engine",
        "version": "1.0.0",
        "status": "operational",
        "environment": settings.environment
    }

@router.get("/health", summary="Basic Health Check")
async def health_check():
    """Basic health check for load balancers."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc)}

@router.get("/health/live", summary="Liveness Probe")
async def liveness_check():
    """Kubernetes/Docker liveness probe."""
    return {"status": "alive"}

@router.get("/health/detailed", response_model=APIResponse, tags=["Monitoring"])
async def detailed_health_check(_: bool = Depends(verify_metrics_access)):
    """Reports which text-generation providers are configured."""
    providers = {
        "gemini": "configured" if ai_service.gemini_client else "not_configured",
        "openai": "configured" if ai_service.openai_client else "not_configured",
    }
    return APIResponse(
        success=True,
        message="Health status retrieved.",
        data={
            "status": "healthy" if ai_service.is_configured else "degraded",
            "services": providers,
            "circuits": {
                "gemini": ai_service.gemini_breaker.snapshot(),
                "openai": ai_service.openai_breaker.snapshot(),
            },
        },
        version=settings.api_version
    )

@router.get("/metrics", tags=["Monitoring"])
async def metrics(request: Request, _: bool = Depends(verify_metrics_access)):
    """Prometheus metrics endpoint."""
    return PlainTextResponse(generate_latest(), media_type="text/plain")
