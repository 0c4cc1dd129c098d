"""
Storage backends for the import engine.
"""

from .base import TERM_KIND, ContentStorage
from .memory import InMemoryStorage
from .sqlite import SQLiteStorage

__all__ = [
    "TERM_KIND",
    "ContentStorage",
    "InMemoryStorage",
    "SQLiteStorage",
]
