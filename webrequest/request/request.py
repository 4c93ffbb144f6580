"""
WebRequest: parameters, method and uploaded files of one web request.
"""

import os
import shutil
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional

from webrequest.exceptions import FileException
from webrequest.logger import get_logger
from webrequest.parameters import ParameterBag
from webrequest.settings import Settings, get_settings
from webrequest.types import Methods, UploadError
from .context import RequestContext, parse_query_string
from .upload_file import UploadFile

# Called with (operation, path, exception) when a best-effort step fails
SuppressedErrorCallback = Callable[[str, str, OSError], None]


class WebRequest:
    """
    Web specific request built from a RequestContext.

    Provides:
    - HTTP method detection (GET, POST, PUT, DELETE; anything else is GET)
    - One parameter bag merged from query string, path info, form body and raw body
    - Accessors over the upload table and moving uploads to their final location

    Accessors for a field without an upload return None (False for the
    has_* predicates) instead of raising.
    """

    def __init__(
        self,
        parameters: Optional[ParameterBag] = None,
        settings: Optional[Settings] = None,
        on_suppressed_error: Optional[SuppressedErrorCallback] = None,
    ):
        """
        Args:
            parameters: Bag to merge request parameters into. A new one is created if omitted.
            settings: Configuration, defaults to the process wide settings
            on_suppressed_error: Receives failures of best-effort chmod and move calls
        """
        self.parameters = parameters if parameters is not None else ParameterBag()
        self.settings = settings or get_settings()
        self.on_suppressed_error = on_suppressed_error
        self.request_id = uuid.uuid4().hex[:12]
        self.context: Optional[RequestContext] = None
        self._method = Methods.GET
        self._files: Dict[str, UploadFile] = {}
        self._logger = get_logger(request_id=self.request_id)

    @classmethod
    def from_environ(
        cls, environ: Mapping[str, Any], settings: Optional[Settings] = None, **kwargs
    ) -> "WebRequest":
        """
        Factory method building the context from a WSGI environ and initializing the request.
        """
        settings = settings or get_settings()
        request = cls(settings=settings, **kwargs)
        request.initialize(RequestContext.from_environ(environ, settings))
        return request

    def initialize(self, context: RequestContext) -> None:
        """
        Detect the HTTP method and load the parameters of the given request.
        """
        self.context = context
        self._files = context.files
        self.set_method(self._detect_method(context.method))
        self._load_parameters(context)

    def shutdown(self) -> None:
        """Nothing to release; temp files belong to the RequestContext."""

    # ------------------------------------------------------------------
    # Method

    @property
    def method(self) -> Methods:
        return self._method

    def get_method(self) -> Methods:
        return self._method

    def set_method(self, method: Methods) -> None:
        self._method = Methods(method)

    # ------------------------------------------------------------------
    # Parameters

    def get_parameter(self, name: str, default: Any = None) -> Any:
        return self.parameters.get(name, default)

    def has_parameter(self, name: str) -> bool:
        return self.parameters.has(name)

    def get_parameters(self) -> Dict[str, Any]:
        return self.parameters.to_dict()

    # ------------------------------------------------------------------
    # Uploaded files

    def get_file(self, name: str) -> Optional[UploadFile]:
        return self._files.get(name)

    def get_file_error(self, name: str) -> Optional[UploadError]:
        upload_file = self._files.get(name)
        return upload_file.error if upload_file else None

    def get_file_extension(self, name: str) -> Optional[str]:
        """
        Extension of the uploaded file: everything after the first dot of its name.

        Example: 'report.final.csv' -> 'final.csv'
        """
        upload_file = self._files.get(name)
        return upload_file.extension if upload_file else None

    def get_file_name(self, name: str) -> Optional[str]:
        upload_file = self._files.get(name)
        return upload_file.filename if upload_file else None

    def get_file_names(self) -> List[str]:
        return list(self._files)

    def get_files(self) -> Dict[str, UploadFile]:
        return dict(self._files)

    def get_file_path(self, name: str) -> Optional[str]:
        upload_file = self._files.get(name)
        return upload_file.temp_path if upload_file else None

    def get_file_size(self, name: str) -> Optional[int]:
        upload_file = self._files.get(name)
        return upload_file.size if upload_file else None

    def get_file_type(self, name: str) -> Optional[str]:
        """
        MIME type sent by the client. This may not be accurate.
        """
        upload_file = self._files.get(name)
        return upload_file.content_type if upload_file else None

    def get_file_contents(self, name: str) -> str:
        """
        Contents of the uploaded file as text.

        Unlike the other getters this returns an empty string, not None,
        when there is no upload for the field.

        Bytes that are not valid UTF-8 are replaced, so this is lossy for
        binary uploads; read those with get_file(name).open("rb").

        Raises:
            OSError: If the temporary file can no longer be read
        """
        upload_file = self._files.get(name)
        if upload_file is None:
            return ""
        with upload_file.open("r", encoding="utf-8", errors="replace") as f:
            return f.read()

    def has_file(self, name: str) -> bool:
        return name in self._files

    def has_file_error(self, name: str) -> bool:
        upload_file = self._files.get(name)
        return upload_file.has_error if upload_file else False

    def has_file_errors(self) -> bool:
        return any(upload_file.has_error for upload_file in self._files.values())

    def has_files(self) -> bool:
        return len(self._files) > 0

    def move_file(
        self,
        name: str,
        destination: str,
        file_mode: int = 0o666,
        create: bool = True,
        dir_mode: int = 0o777,
    ) -> bool:
        """
        Move an uploaded file to its final location.

        Args:
            name: Field name of the upload
            destination: Filesystem path of the new file, including its filename
            file_mode: Mode applied to the moved file
            create: Create the destination directory when it does not exist
            dir_mode: Mode used for created directories

        Returns:
            True if the file was moved. False when there is no usable upload
            (missing, failed or empty) or the move itself failed.

        Raises:
            FileException: If the destination directory cannot be created,
                exists but is not a directory, or is not writable
        """
        upload_file = self._files.get(name)
        if upload_file is None or upload_file.error != UploadError.OK or upload_file.size <= 0:
            return False

        directory = os.path.dirname(destination) or "."

        if not os.access(directory, os.R_OK):
            if create:
                try:
                    os.makedirs(directory, dir_mode)
                except OSError as e:
                    raise FileException(
                        f'Failed to create file upload directory "{directory}"', directory
                    ) from e

                # makedirs applies the umask, and only to the leaf directory
                self._best_effort("chmod", directory, os.chmod, directory, dir_mode)

        elif not os.path.isdir(directory):
            raise FileException(
                f'File upload path "{directory}" exists, but is not a directory', directory
            )

        elif not os.access(directory, os.W_OK):
            raise FileException(f'File upload path "{directory}" is not writable', directory)

        if not self._best_effort("move", destination, shutil.move, upload_file.temp_path, destination):
            return False

        self._best_effort("chmod", destination, os.chmod, destination, file_mode)
        self._logger.info("Moved upload to %s", destination, extra={"field": name})
        return True

    # ------------------------------------------------------------------
    # Internals

    def _best_effort(self, operation: str, path: str, func: Callable, *args) -> bool:
        """
        Run a filesystem call whose failure is reported but not raised.
        """
        try:
            func(*args)
        except OSError as e:
            self._logger.debug("%s failed for %s: %s", operation, path, e)
            if self.on_suppressed_error is not None:
                self.on_suppressed_error(operation, path, e)
            return False
        return True

    @staticmethod
    def _detect_method(indicator: Optional[str]) -> Methods:
        try:
            return Methods(indicator)
        except ValueError:
            return Methods.GET

    def _load_parameters(self, context: RequestContext) -> None:
        """
        Merge parameters in order of precedence, later sources winning:
        query string, path info, form body, raw body.
        """
        self.parameters.merge(context.query)

        source = context.server if self.settings.path_info_source == "SERVER" else context.environ
        path_info = source.get(self.settings.path_info_key)
        if path_info:
            segments = path_info.strip("/").split("/")
            # A trailing segment without a value is ignored
            for i in range(0, len(segments) - 1, 2):
                self.parameters.set(segments[i], segments[i + 1])

        self.parameters.merge(context.form)
        self.parameters.merge(parse_query_string(context.raw_body))

        self._logger.debug(
            "Loaded %d parameters", len(self.parameters), extra={"method": self._method.value}
        )

    def __repr__(self) -> str:
        return f"<WebRequest {self._method.value} files={len(self._files)}>"
