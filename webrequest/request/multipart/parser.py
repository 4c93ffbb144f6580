"""
Multipart parser that turns a multipart/form-data body into form fields and an upload table.
"""

import tempfile
import os
from typing import Dict, Tuple, Optional

from webrequest.types import UploadError
from ..upload_file import UploadFile


class MultipartParser:
    """
    Parses the entire request body in memory. File parts are written to
    temporary files and described by UploadFile records keyed by field name.
    When a field name repeats, the last part wins.
    """

    def __init__(self, temp_dir: Optional[str] = None, max_file_size: Optional[int] = None):
        """
        Args:
            temp_dir: Directory for temporary files. If None, uses system default.
            max_file_size: Parts larger than this are recorded with INI_SIZE and not stored.
        """
        self.temp_dir = temp_dir
        self.max_file_size = max_file_size

    def parse(
        self, body: bytes, boundary: str
    ) -> Tuple[Dict[str, str], Dict[str, UploadFile]]:
        """
        Parse multipart data from request body.

        Args:
            body: Complete request body as bytes
            boundary: Boundary string from Content-Type header

        Returns:
            Tuple of (form_data_dict, upload_table)
        """
        if not body or not boundary:
            return {}, {}

        boundary_bytes = f"--{boundary}".encode()
        parts = body.split(boundary_bytes)

        form_data: Dict[str, str] = {}
        files: Dict[str, UploadFile] = {}

        # Skip the preamble and the closing part
        for part in parts[1:-1]:
            if not part or part == b"--":
                continue

            # Split headers from content before stripping to preserve empty content
            if b"\r\n\r\n" not in part:
                continue

            headers_section, content = part.split(b"\r\n\r\n", 1)
            headers_section = headers_section.strip()

            content_disposition = self._get_part_header(headers_section, "content-disposition")
            field_name = self._extract_param(content_disposition, "name")
            filename = self._extract_param(content_disposition, "filename")

            if not field_name:
                continue

            # The final CRLF belongs to the multipart framing, not to the value
            content = content.removesuffix(b"\r\n")

            if filename is None:
                try:
                    form_data[field_name] = content.decode("utf-8")
                except UnicodeDecodeError:
                    form_data[field_name] = ""
                continue

            content_type = self._get_part_header(headers_section, "content-type") or "application/octet-stream"
            files[field_name] = self._build_upload(filename, content, content_type)

        return form_data, files

    def _build_upload(self, filename: str, content: bytes, content_type: str) -> UploadFile:
        if not filename:
            # File input submitted without choosing a file
            return UploadFile(None, "", 0, "", UploadError.NO_FILE)

        if self.max_file_size is not None and len(content) > self.max_file_size:
            return UploadFile(filename, "", 0, content_type, UploadError.INI_SIZE)

        try:
            temp_path = self._write_to_temp_file(content)
        except OSError:
            return UploadFile(filename, "", 0, content_type, UploadError.CANT_WRITE)

        return UploadFile(
            filename=filename,
            temp_path=temp_path,
            size=len(content),
            content_type=content_type,
        )

    def _write_to_temp_file(self, content: bytes) -> str:
        """
        Write content to a temporary file and return the path.
        """
        temp_fd, temp_path = tempfile.mkstemp(dir=self.temp_dir, prefix="upload-")

        try:
            with os.fdopen(temp_fd, "wb") as temp_file:
                temp_file.write(content)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

        return temp_path

    def _get_part_header(self, headers_section: bytes, header: str) -> str:
        """
        Value of a header of a multipart section, or an empty string.
        """
        for line in headers_section.split(b"\r\n"):
            line = line.strip()
            if b":" not in line:
                continue

            name, value = line.split(b":", 1)
            if name.decode().strip().lower() == header:
                return value.decode().strip()

        return ""

    def _extract_param(self, content_disposition: str, param: str) -> Optional[str]:
        """
        Extract a parameter from a Content-Disposition header.

        Example: ('form-data; name="file"; filename="test.txt"', 'filename') -> 'test.txt'
        """
        if not content_disposition:
            return None

        prefix = f"{param}="
        for part in content_disposition.split(";"):
            part = part.strip()
            if part.startswith(prefix):
                value = part[len(prefix):]

                if value.startswith('"') and value.endswith('"'):
                    value = value[1:-1]

                return value

        return None

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

        # The value ends at a semicolon, whitespace or the end of the string
        value_end = value_start
        while value_end < len(content_type):
            if content_type[value_end] in [";", " ", "\t"]:
                break
            value_end += 1

        boundary = content_type[value_start:value_end]

        if boundary.startswith('"') and boundary.endswith('"'):
            boundary = boundary[1:-1]

        return boundary or None
