"""
Session storage adapters.

- SessionAdapter: Abstract base every adapter implements
- MemorySessionAdapter: Process-local dict, for development and tests
- DatabaseSessionAdapter: SQL table through SQLAlchemy's async engine
"""

from .base import SessionAdapter
from .database import DatabaseSessionAdapter
from .memory import MemorySessionAdapter

__all__ = ["SessionAdapter", "MemorySessionAdapter", "DatabaseSessionAdapter"]
