"""
httpkit Middleware Package

Middleware process requests and responses in a pipeline. Each one is a
callable ``(request, call_next) -> response``.
"""

from .middleware_chain import MiddlewareCallable, MiddlewareChain

__all__ = ["MiddlewareChain", "MiddlewareCallable"]
