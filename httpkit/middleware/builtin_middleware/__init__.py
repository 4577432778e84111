"""
Built-in middleware for httpkit.
"""

from .exception import ExceptionMiddleware

__all__ = ["ExceptionMiddleware"]
