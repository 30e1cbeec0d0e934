"""
Repository layer: data access over the async session, flush-only.

Usage:
    from drill_api.repositories import BaseRepository, DrillRepository
"""

from .base_repository import BaseRepository
from .drill_repository import DrillRepository

__all__ = [
    "BaseRepository",
    "DrillRepository",
]
