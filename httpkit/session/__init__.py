"""
Session package for httpkit.

- Session: Lifecycle manager (validation, regeneration, garbage collection)
- SessionConfig: Session settings
- SessionMiddleware: Starts and persists a Session around each request
- adapters: Pluggable storage backends
"""

from .adapters import DatabaseSessionAdapter, MemorySessionAdapter, SessionAdapter
from .config import SessionConfig
from .middleware import SessionMiddleware
from .session import KEY_DATA, Session

__all__ = [
    "KEY_DATA",
    "Session",
    "SessionConfig",
    "SessionMiddleware",
    "SessionAdapter",
    "MemorySessionAdapter",
    "DatabaseSessionAdapter",
]
