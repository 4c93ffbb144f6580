"""
Per-request input consumed by WebRequest.
"""

import os
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from webrequest.exceptions import InitializationException
from webrequest.settings import Settings, get_settings
from .upload_file import UploadFile
from .multipart.parser import MultipartParser


def parse_query_string(query_string: str) -> Dict[str, str]:
    """
    Parse a URL-encoded string into a dict.

    Blank values are kept. For duplicate names the last value wins.

    Example: 'page=1&tag=a&tag=b' -> {'page': '1', 'tag': 'b'}
    """
    if not query_string:
        return {}
    return dict(urllib.parse.parse_qsl(query_string, keep_blank_values=True))


@dataclass
class RequestContext:
    """
    Everything WebRequest reads about one inbound request.

    Built once per request by the server adapter (see from_environ) and
    handed to WebRequest.initialize(). Nothing here outlives the request.
    """

    method: Optional[str] = None
    query: Dict[str, Any] = field(default_factory=dict)
    form: Dict[str, Any] = field(default_factory=dict)
    raw_body: str = ""
    files: Dict[str, UploadFile] = field(default_factory=dict)
    server: Mapping[str, Any] = field(default_factory=dict)
    environ: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_environ(
        cls, environ: Mapping[str, Any], settings: Optional[Settings] = None
    ) -> "RequestContext":
        """
        Build a context from a WSGI environ.

        URL-encoded bodies fill both form and raw_body. Multipart bodies fill
        form and files and leave raw_body empty. Any other body is only
        available as raw_body.

        Raises:
            InitializationException: If CONTENT_LENGTH is not an integer
        """
        settings = settings or get_settings()

        body = cls._read_body(environ)
        content_type = environ.get("CONTENT_TYPE", "") or ""

        form: Dict[str, Any] = {}
        files: Dict[str, UploadFile] = {}
        raw_body = ""

        if "multipart/form-data" in content_type:
            boundary = MultipartParser.extract_boundary(content_type)
            if boundary:
                parser = MultipartParser(settings.temp_dir, settings.max_file_size)
                form, files = parser.parse(body, boundary)
        else:
            raw_body = body.decode("utf-8", errors="replace")
            if "application/x-www-form-urlencoded" in content_type:
                form = parse_query_string(raw_body)

        return cls(
            method=environ.get("REQUEST_METHOD"),
            query=parse_query_string(environ.get("QUERY_STRING", "")),
            form=form,
            raw_body=raw_body,
            files=files,
            server=environ,
            environ=os.environ,
        )

    @staticmethod
    def _read_body(environ: Mapping[str, Any]) -> bytes:
        raw_length = environ.get("CONTENT_LENGTH") or "0"
        try:
            content_length = int(raw_length)
        except ValueError:
            raise InitializationException(f'Invalid CONTENT_LENGTH "{raw_length}"')

        stream = environ.get("wsgi.input")
        if content_length <= 0 or stream is None:
            return b""
        return stream.read(content_length)

    def cleanup(self) -> None:
        """
        Delete temporary upload files that were not moved elsewhere.
        """
        for upload_file in self.files.values():
            upload_file.cleanup()
