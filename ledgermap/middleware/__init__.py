"""
Middleware module initialization.
"""
from ledgermap.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    add_correlation_id_processor,
    get_correlation_id,
)

__all__ = [
    "CorrelationIdMiddleware",
    "RequestLoggingMiddleware",
    "add_correlation_id_processor",
    "get_correlation_id",
]
