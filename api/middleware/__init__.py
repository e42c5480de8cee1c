"""
API Middleware.
"""

from .auth import require_admin
from .metrics import MetricsMiddleware, metrics_endpoint
from .rate_limit import RateLimitMiddleware

__all__ = ["require_admin", "MetricsMiddleware", "metrics_endpoint", "RateLimitMiddleware"]
