"""
Multipart parser - parses a complete multipart/form-data body held in memory.
"""

import logging
import os
import tempfile
from typing import Any, Dict, List, Optional, Tuple

from ..upload_file import UploadedFile, UploadError

logger = logging.getLogger(__name__)


class MultipartParser:
    """
    Multipart parser that parses the entire request body in memory.

    File parts are written to temp files and returned as UploadedFile
    instances; regular parts become form fields. A field name ending in
    ``[]`` collects its values in a list, otherwise the last value wins.
    """

    def __init__(self, temp_dir: Optional[str] = None, max_file_size: Optional[int] = None):
        """
        Args:
            temp_dir: Directory for temporary files. If None, uses system default.
            max_file_size: Largest accepted file in bytes. Bigger files are
                reported with UploadError.INI_SIZE and not written to disk.
        """
        self.temp_dir = temp_dir
        self.max_file_size = max_file_size

    def parse(
        self, body: bytes, boundary: str
    ) -> Tuple[Dict[str, Any], List[Tuple[str, UploadedFile]]]:
        """
        Parse multipart data from request body.

        Args:
            body: Complete request body as bytes
            boundary: Boundary string from Content-Type header

        Returns:
            Tuple of (form_fields, [(field_name, uploaded_file), ...])
        """
        if not body or not boundary:
            return {}, []

        boundary_bytes = f"--{boundary}".encode()
        parts = body.split(boundary_bytes)

        form_data: Dict[str, Any] = {}
        files: List[Tuple[str, UploadedFile]] = []

        # skip the preamble and the closing "--" part
        for part in parts[1:-1]:
            if not part or part == b"--":
                continue

            # Split headers from content BEFORE stripping to preserve empty content
            if b"\r\n\r\n" not in part:
                continue

            headers_section, content = part.split(b"\r\n\r\n", 1)
            headers_section = headers_section.strip()

            content_disposition = self._get_part_header(headers_section, "content-disposition")
            field_name = self._extract_param(content_disposition or "", "name")
            filename = self._extract_param(content_disposition or "", "filename")

            if not field_name:
                continue

            # The trailing CRLF belongs to the multipart framing
            content = content.removesuffix(b"\r\n")

            if filename is not None:
                content_type = (
                    self._get_part_header(headers_section, "content-type")
                    or "application/octet-stream"
                )
                files.append((field_name, self._build_upload(filename, content_type, content)))
            else:
                try:
                    value = content.decode("utf-8")
                except UnicodeDecodeError:
                    logger.warning("Dropping non UTF-8 value of form field '%s'", field_name)
                    value = ""
                self._add_field(form_data, field_name, value)

        return form_data, files

    def _build_upload(self, filename: str, content_type: str, content: bytes) -> UploadedFile:
        if not filename:
            # an empty file input is submitted with filename=""
            return UploadedFile("", "", content_type, 0, UploadError.NO_FILE)

        if self.max_file_size is not None and len(content) > self.max_file_size:
            return UploadedFile("", filename, content_type, len(content), UploadError.INI_SIZE)

        try:
            temp_path = self._write_to_temp_file(content)
        except OSError:
            logger.exception("Could not store upload '%s'", filename)
            return UploadedFile("", filename, content_type, len(content), UploadError.CANT_WRITE)

        return UploadedFile(temp_path, filename, content_type, len(content))

    @staticmethod
    def _add_field(form_data: Dict[str, Any], name: str, value: str) -> None:
        if name.endswith("[]"):
            form_data.setdefault(name[:-2], []).append(value)
        else:
            form_data[name] = value

    def _write_to_temp_file(self, content: bytes) -> str:
        """
        Write content to a temporary file and return the path.
        """
        temp_fd, temp_path = tempfile.mkstemp(dir=self.temp_dir, prefix="httpkit-")

        try:
            with os.fdopen(temp_fd, "wb") as temp_file:
                temp_file.write(content)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

        return temp_path

    @staticmethod
    def _get_part_header(headers_section: bytes, header_name: str) -> Optional[str]:
        """
        Extract a header value from a multipart section.

        Returns:
            Header value or None if the header is absent
        """
        for line in headers_section.split(b"\r\n"):
            line = line.strip()
            if not line or b":" not in line:
                continue

            name, value = line.split(b":", 1)
            if name.decode("latin-1").strip().lower() == header_name:
                return value.decode("utf-8", errors="replace").strip()

        return None

    @staticmethod
    def _extract_param(content_disposition: str, param: str) -> Optional[str]:
        """
        Extract a parameter from a Content-Disposition header.

        Example: 'form-data; name="file"; filename="test.txt"', 'filename' -> 'test.txt'

        Returns None if the parameter is absent; an empty value gives ''.
        """
        prefix = f"{param}="
        for part in MultipartParser._split_params(content_disposition):
            part = part.strip()
            if part.lower().startswith(prefix):
                value = part[len(prefix):]
                if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
                    value = value[1:-1].replace('\\"', '"')
                return value

        return None

    @staticmethod
    def _split_params(header: str) -> List[str]:
        """Split a header on ';', leaving quoted strings intact."""
        parts = []
        current = []
        in_quotes = False
        escaped = False
        for char in header:
            if escaped:
                escaped = False
            elif char == "\\" and in_quotes:
                escaped = True
            elif char == '"':
                in_quotes = not in_quotes
            elif char == ";" and not in_quotes:
                parts.append("".join(current))
                current = []
                continue
            current.append(char)
        parts.append("".join(current))
        return parts

    @staticmethod
    def extract_boundary(content_type: str) -> Optional[str]:
        """
        Extract boundary from Content-Type header.

        Example: 'multipart/form-data; boundary=----WebKitFormBoundary7MA4YWxkTrZu0gW'
        """
        if not content_type or "multipart/" not in content_type:
            return None

        boundary_start = content_type.find("boundary=")
        if boundary_start == -1:
            return None

        value_start = boundary_start + 9
        if value_start >= len(content_type):
            return None

        # The value ends at a semicolon, whitespace, or the end of the string
        value_end = value_start
        while value_end < len(content_type):
            if content_type[value_end] in [";", " ", "\t"]:
                break
            value_end += 1

        boundary = content_type[value_start:value_end]

        if boundary.startswith('"') and boundary.endswith('"'):
            boundary = boundary[1:-1]

        return boundary or None
