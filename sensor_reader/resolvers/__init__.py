"""Resolvers that refine a collected report."""

from .media_type import StorageMediaTypeResolver
from .sensor_fallback import SensorFallbackResolver

__all__ = [
    "StorageMediaTypeResolver",
    "SensorFallbackResolver",
]
