"""HTTP middleware."""

from checkin_api.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware

__all__ = ["CORRELATION_ID_HEADER", "CorrelationIdMiddleware"]
