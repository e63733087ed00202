"""
Adapters layer - Storage backends for schedule data.
"""

from .memory_repository import InMemoryScheduleRepository

__all__ = ["InMemoryScheduleRepository"]
