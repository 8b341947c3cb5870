# access_ledger/api/routers/health.py

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Liveness plus correlation / tenant context from request state."""
    settings = request.app.state.services.settings
    return {
        "status": "ok",
        "tenant_id": getattr(request.state, "tenant_id", None),
        "correlation_id": getattr(request.state, "correlation_id", None),
        "environment": settings.environment,
        "version": settings.version,
    }
