"""
Request package for webrequest.

This package contains:
- WebRequest: method detection, merged parameters and upload accessors
- RequestContext: the per-request input WebRequest is built from
- UploadFile: one entry of the upload table
"""

from .context import RequestContext
from .request import WebRequest
from .upload_file import UploadFile

__all__ = ["WebRequest", "RequestContext", "UploadFile"]
