"""
UploadFile class describing one entry of the upload table.
"""

import os
from typing import IO, Optional

from webrequest.types import UploadError


class UploadFile:
    """
    Metadata of an uploaded file plus read-only access to its temporary copy.

    Use upload_file.open() to get a standard Python file handle for reading.

    Attributes:
        filename: Original filename sent by the client, None when the field was left empty
        temp_path: Where the upload handler stored the file
        size: Declared size in bytes
        content_type: MIME type sent by the client. This may not be accurate.
        error: UploadError status of the upload
    """

    def __init__(
        self,
        filename: Optional[str],
        temp_path: str,
        size: int,
        content_type: str = "",
        error: UploadError = UploadError.OK,
    ):
        self.filename = filename
        self.temp_path = temp_path
        self.size = size
        self.content_type = content_type
        self.error = UploadError(error)

    @property
    def extension(self) -> Optional[str]:
        """
        Everything after the first dot of the filename.

        'report.final.csv' -> 'final.csv'. Returns None without a filename
        and an empty string when the filename has no dot.
        """
        if self.filename is None:
            return None
        _, dot, extension = self.filename.partition(".")
        return extension if dot else ""

    @property
    def has_error(self) -> bool:
        return self.error != UploadError.OK

    def open(self, mode: str = "rb", **kwargs) -> IO:
        """
        Open the uploaded file for reading.

        Args:
            mode: File mode. Only read modes allowed ('r', 'rb').

        Raises:
            ValueError: If write mode is attempted
        """
        if "w" in mode or "a" in mode or "+" in mode:
            raise ValueError("Write operations not allowed on uploaded files.")

        return open(self.temp_path, mode, **kwargs)

    def cleanup(self) -> None:
        """Remove the temporary file if it is still there."""
        if self.temp_path and os.path.exists(self.temp_path):
            os.unlink(self.temp_path)

    def __repr__(self) -> str:
        return (
            f"UploadFile(filename='{self.filename}', size={self.size}, "
            f"content_type='{self.content_type}', error={self.error.name})"
        )
