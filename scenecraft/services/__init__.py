"""
SceneCraft Services Module
"""

from .tracing import TracingService, tracing_service

__all__ = ["TracingService", "tracing_service"]
