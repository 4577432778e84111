"""
Multipart form data parsing package for httpkit.
"""

from .parser import MultipartParser

__all__ = ["MultipartParser"]
