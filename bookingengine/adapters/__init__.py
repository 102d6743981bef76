"""
Adapters layer - Configuration sources and booking storage.
"""

from .config_source import StaticConfigurationSource
from .http_config_source import HttpConfigurationSource
from .memory_store import InMemoryBookingStore, JsonBookingStore

__all__ = [
    "HttpConfigurationSource",
    "InMemoryBookingStore",
    "JsonBookingStore",
    "StaticConfigurationSource",
]
