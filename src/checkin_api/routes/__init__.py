"""API routes package.

Routers are organized by domain:

- health: Health check endpoint
- guests: Guest listing, registration and lifecycle
- audit: Audit trail
- webhooks: Form provider, SMS and team-chat callbacks

All routers are registered in main.py with /api prefix.
"""

from checkin_api.routes.audit import router as audit_router
from checkin_api.routes.guests import router as guests_router
from checkin_api.routes.health import router as health_router
from checkin_api.routes.webhooks import router as webhooks_router

__all__ = [
    "audit_router",
    "guests_router",
    "health_router",
    "webhooks_router",
]
