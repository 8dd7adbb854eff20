"""API package exports."""

from taskmanager.api.middleware import CorrelationIdMiddleware, SecurityHeadersMiddleware

__all__ = ["CorrelationIdMiddleware", "SecurityHeadersMiddleware"]
