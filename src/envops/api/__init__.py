"""
API package - remote activity loading.
"""
from .base import ActivityLoader
from .client import ApiClient

__all__ = ["ActivityLoader", "ApiClient"]
