"""
Adapters layer - In-memory stores and external busy-time sources.
"""

from .busy_time_provider import StaticBusyTimeProvider
from .memory_store import InMemoryStore, load_data_file

__all__ = ["InMemoryStore", "StaticBusyTimeProvider", "load_data_file"]
