"""FastAPI application for the visitor check-in REST API.

This package provides REST endpoints for:
- Health checks
- Guest registration, listing and lifecycle
- Audit trail
- Webhooks from the form provider, Twilio and Slack
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from checkin.utils.logging import configure_logging, get_logger
from checkin_api.dependencies import get_checkin_service
from checkin_api.exceptions import register_exception_handlers
from checkin_api.middleware.correlation import CorrelationIdMiddleware
from checkin_api.routes.audit import router as audit_router
from checkin_api.routes.guests import router as guests_router
from checkin_api.routes.health import router as health_router
from checkin_api.routes.webhooks import router as webhooks_router

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Flush background audit writes before the process stops."""
    yield
    override = app.dependency_overrides.get(get_checkin_service)
    if override is not None:
        service = override()
    elif get_checkin_service.cache_info().currsize:
        service = get_checkin_service()
    else:
        return
    await service.audit.drain()
    logger.info("Audit writes drained on shutdown")


app = FastAPI(
    title="Visitor Check-in API",
    description="REST API for visitor registration, check-in lifecycle and notifications",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for the reception dashboard in local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

app.include_router(health_router, prefix="/api")
app.include_router(guests_router, prefix="/api")
app.include_router(audit_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Root liveness endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "visitor-checkin",
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway.
# Lifespan runs per invocation so scheduled audit writes are drained.
handler = Mangum(app, lifespan="auto")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run("checkin_api.main:app", host=host, port=port, reload=True, reload_dirs=["src"])
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
