class WebRequestException(Exception):
    """Base class for every error raised by webrequest."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class InitializationException(WebRequestException):
    def __init__(self, message: str = "Failed to initialize request"):
        super().__init__(message)


class FileException(WebRequestException):
    """Raised when an upload destination cannot be prepared."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path
