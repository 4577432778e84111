"""
Request package for httpkit.

This package contains classes for handling HTTP requests, including:
- ClientRequest: Method, URI and request target on top of Message
- Request: Server-side request built from an ASGI connection
- UploadedFile: Uploaded file metadata with read-only file access and move_to()
"""

from .client_request import ClientRequest
from .request import Request
from .upload_file import UploadedFile, UploadError

__all__ = ["ClientRequest", "Request", "UploadedFile", "UploadError"]
