"""API middleware: correlation ID, optional tenant context, request access log."""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from access_ledger.core.context import correlation_id_ctx, tenant_id_ctx

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"
CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Generate or preserve correlation ID; attach to request.state, response header, and logging context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        correlation_id_ctx.set(correlation_id)

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Optional X-Tenant-ID. Platform-level requests carry none."""

    async def dispatch(self, request: Request, call_next) -> Response:
        tenant_id = (request.headers.get(TENANT_HEADER) or "").strip() or None
        request.state.tenant_id = tenant_id
        tenant_id_ctx.set(tenant_id)
        return await call_next(request)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """After response: structured log line with path, method, status and latency."""

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request_completed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response
