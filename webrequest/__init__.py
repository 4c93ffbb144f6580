from .request import WebRequest, RequestContext, UploadFile
from .parameters import ParameterBag
from .settings import Settings, get_settings
from .types import Methods, UploadError
from .exceptions import WebRequestException, FileException, InitializationException

__version__ = "0.1.0"
__all__ = [
    "WebRequest",
    "RequestContext",
    "UploadFile",
    "ParameterBag",
    "Settings",
    "get_settings",
    "Methods",
    "UploadError",
    "WebRequestException",
    "FileException",
    "InitializationException",
]
