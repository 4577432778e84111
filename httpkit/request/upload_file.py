"""
UploadedFile class for handling file uploads in httpkit.
"""

import os
import shutil
from enum import IntEnum
from typing import IO, Any, Dict, List, Mapping, Optional, Union

from httpkit.exceptions import UploadException


class UploadError(IntEnum):
    """Upload status codes, numbered like the classic CGI upload errors."""

    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8


UploadedFileTree = Dict[str, Union["UploadedFile", List["UploadedFile"], Dict[str, Any]]]


class UploadedFile:
    """
    Container for uploaded file metadata with read-only file access.

    Use uploaded_file.open() to get a standard Python file handle for reading,
    and uploaded_file.move_to() to keep the file once the request is done.

    Do not trust client_filename or client_media_type: both come straight
    from the client.

    Attributes:
        file: Path of the file on disk (the temp file until moved)
        client_filename: Filename sent by the client
        client_media_type: Media type sent by the client
        size: Size of the file in bytes
        error: UploadError status of the upload
    """

    def __init__(
        self,
        file: str,
        client_filename: Optional[str] = None,
        client_media_type: Optional[str] = None,
        size: Optional[int] = None,
        error: Union[UploadError, int] = UploadError.OK,
    ):
        self.file = file
        self.client_filename = client_filename
        self.client_media_type = client_media_type
        self.size = size
        self.error = UploadError(error)
        self._moved = False

    @classmethod
    def parse_uploaded_files(cls, uploaded_files: Mapping[str, Any]) -> UploadedFileTree:
        """
        Normalize a CGI-style file tree into UploadedFile instances.

        Each leaf of the input is a mapping with the keys ``tmp_name``,
        ``name``, ``type``, ``size`` and ``error``. For multi-file fields the
        five keys hold parallel lists. Mappings without an ``error`` key are
        nested sub-fields and are walked recursively.

        Example:
            {"docs": {"tmp_name": ["/tmp/a", "/tmp/b"], "name": ["a.txt", "b.txt"],
                      "type": [...], "size": [...], "error": [0, 0]}}
            -> {"docs": [UploadedFile(...), UploadedFile(...)]}
        """
        parsed: UploadedFileTree = {}
        for field, uploaded in uploaded_files.items():
            if not isinstance(uploaded, Mapping):
                continue
            if "error" not in uploaded:
                parsed[field] = cls.parse_uploaded_files(uploaded)
                continue

            if not isinstance(uploaded["error"], (list, tuple)):
                parsed[field] = cls(
                    uploaded["tmp_name"],
                    uploaded.get("name"),
                    uploaded.get("type"),
                    uploaded.get("size"),
                    uploaded["error"],
                )
                continue

            def pick(key: str, index: int) -> Any:
                values = uploaded.get(key)
                if values is None:
                    return None
                return values[index]

            parsed[field] = [
                cls(
                    uploaded["tmp_name"][index],
                    pick("name", index),
                    pick("type", index),
                    pick("size", index),
                    error,
                )
                for index, error in enumerate(uploaded["error"])
            ]
        return parsed

    @property
    def moved(self) -> bool:
        return self._moved

    def is_valid(self) -> bool:
        return self.error == UploadError.OK

    def open(self, mode: str = "rb") -> IO:
        """
        Open the uploaded file for reading.

        Args:
            mode: File mode. Only read modes allowed ('r', 'rb').

        Raises:
            ValueError: If a write mode is requested
            UploadException: If the file has already been moved

        Example:
            with uploaded_file.open() as f:
                header = f.read(100)
        """
        if "w" in mode or "a" in mode or "+" in mode or "x" in mode:
            raise ValueError(
                "Write operations not allowed on uploaded files. "
                "Use move_to() to keep the file somewhere else."
            )
        if self._moved:
            raise UploadException("Cannot open an uploaded file after it has been moved")

        return open(self.file, mode)

    def get_stream(self) -> IO[bytes]:
        return self.open("rb")

    def move_to(self, target_path: str) -> None:
        """
        Move the uploaded file to a new location.

        The temp file is removed on completion. Calling this twice is an error.

        Raises:
            UploadException: On a second call, or if the upload itself failed
            ValueError: If the target directory does not exist or is not writable
        """
        if self._moved:
            raise UploadException("Uploaded file already moved")
        if not self.is_valid():
            raise UploadException(
                f"Cannot move uploaded file {self.client_filename}: upload error {self.error.name}"
            )

        target_dir = os.path.dirname(os.path.abspath(target_path))
        if not os.path.isdir(target_dir) or not os.access(target_dir, os.W_OK):
            raise ValueError("Upload target path is not writable")

        try:
            shutil.move(self.file, target_path)
        except OSError as e:
            raise UploadException(
                f"Error moving uploaded file {self.client_filename} to {target_path}"
            ) from e

        self.file = target_path
        self._moved = True

    def cleanup(self) -> None:
        """
        Remove the temp file unless it has been moved.

        This is called by the application once the response has been sent.
        """
        if not self._moved and self.file and os.path.exists(self.file):
            os.unlink(self.file)

    def __repr__(self) -> str:
        return (
            f"UploadedFile(client_filename='{self.client_filename}', size={self.size}, "
            f"client_media_type='{self.client_media_type}', error={self.error.name})"
        )
