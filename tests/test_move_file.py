"""
Unit tests for WebRequest.move_file.
"""

import os
import stat

import pytest

from webrequest import FileException, RequestContext, Settings, UploadError, UploadFile, WebRequest


class SuppressedErrors(list):
    """Collects (operation, path, exception) reported by best-effort steps."""

    def __call__(self, operation, path, exc):
        self.append((operation, path, exc))


def create_upload(tmp_path, content=b"uploaded data", **kwargs) -> UploadFile:
    temp_path = tmp_path / "upload-tmp"
    temp_path.write_bytes(content)
    return UploadFile(
        filename=kwargs.pop("filename", "photo.jpg"),
        temp_path=str(temp_path),
        size=kwargs.pop("size", len(content)),
        content_type="image/jpeg",
        **kwargs,
    )


def create_request(files, errors=None) -> WebRequest:
    request = WebRequest(settings=Settings(), on_suppressed_error=errors)
    request.initialize(RequestContext(method="POST", files=files))
    return request


def mode_of(path) -> int:
    return stat.S_IMODE(os.stat(path).st_mode)


class TestMoveFilePreconditions:
    """Test uploads that must not be moved."""

    def test_missing_upload(self, tmp_path):
        """Test an unknown field returns False and creates nothing."""
        request = create_request({})
        destination = tmp_path / "out" / "file.jpg"

        assert request.move_file("missing", str(destination)) is False
        assert not (tmp_path / "out").exists()

    def test_zero_size_upload(self, tmp_path):
        """Test an empty upload returns False and leaves the temp file alone."""
        upload = create_upload(tmp_path, content=b"")
        request = create_request({"photo": upload})
        destination = tmp_path / "out" / "file.jpg"

        assert request.move_file("photo", str(destination)) is False
        assert not (tmp_path / "out").exists()
        assert os.path.exists(upload.temp_path)

    def test_failed_upload(self, tmp_path):
        """Test an upload with an error code returns False."""
        upload = create_upload(tmp_path, error=UploadError.PARTIAL)
        request = create_request({"photo": upload})
        destination = tmp_path / "out" / "file.jpg"

        assert request.move_file("photo", str(destination)) is False
        assert not (tmp_path / "out").exists()
        assert os.path.exists(upload.temp_path)


class TestMoveFile:
    """Test successful moves."""

    def test_move_into_existing_directory(self, tmp_path):
        """Test the temp file is moved to the destination."""
        upload = create_upload(tmp_path)
        (tmp_path / "media").mkdir()
        destination = tmp_path / "media" / "photo.jpg"
        request = create_request({"photo": upload})

        assert request.move_file("photo", str(destination)) is True
        assert destination.read_bytes() == b"uploaded data"
        assert not os.path.exists(upload.temp_path)

    def test_creates_missing_directories(self, tmp_path):
        """Test nested destination directories are created."""
        upload = create_upload(tmp_path)
        destination = tmp_path / "a" / "b" / "c" / "photo.jpg"
        request = create_request({"photo": upload})

        assert request.move_file("photo", str(destination)) is True
        assert destination.exists()

    def test_applies_file_mode(self, tmp_path):
        """Test the moved file gets the requested mode."""
        upload = create_upload(tmp_path)
        destination = tmp_path / "photo.jpg"
        request = create_request({"photo": upload})

        request.move_file("photo", str(destination), file_mode=0o640)

        assert mode_of(destination) == 0o640

    def test_applies_dir_mode_to_created_directory(self, tmp_path):
        """Test a created directory gets the requested mode."""
        upload = create_upload(tmp_path)
        destination = tmp_path / "uploads" / "photo.jpg"
        request = create_request({"photo": upload})

        request.move_file("photo", str(destination), dir_mode=0o750)

        assert mode_of(tmp_path / "uploads") == 0o750

    def test_relative_destination(self, tmp_path, monkeypatch):
        """Test a bare filename is moved into the working directory."""
        upload = create_upload(tmp_path)
        workdir = tmp_path / "work"
        workdir.mkdir()
        monkeypatch.chdir(workdir)
        request = create_request({"photo": upload})

        assert request.move_file("photo", "photo.jpg") is True
        assert (workdir / "photo.jpg").exists()


class TestMoveFileDirectoryErrors:
    """Test destination directory problems raise FileException."""

    def test_parent_is_regular_file(self, tmp_path):
        """Test a destination directory that is a regular file raises."""
        upload = create_upload(tmp_path)
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        request = create_request({"photo": upload})

        with pytest.raises(FileException, match="exists, but is not a directory") as exc_info:
            request.move_file("photo", str(blocker / "photo.jpg"))

        assert exc_info.value.path == str(blocker)
        assert os.path.exists(upload.temp_path)

    def test_directory_not_writable(self, tmp_path, monkeypatch):
        """Test a read-only destination directory raises."""
        upload = create_upload(tmp_path)
        (tmp_path / "readonly").mkdir()
        request = create_request({"photo": upload})

        real_access = os.access
        monkeypatch.setattr(os, "access", lambda path, mode: mode != os.W_OK and real_access(path, mode))

        with pytest.raises(FileException, match="is not writable"):
            request.move_file("photo", str(tmp_path / "readonly" / "photo.jpg"))

    def test_directory_creation_fails(self, tmp_path, monkeypatch):
        """Test a failing makedirs raises with the directory in the message."""
        upload = create_upload(tmp_path)
        request = create_request({"photo": upload})

        def failing_makedirs(*args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr(os, "makedirs", failing_makedirs)
        directory = tmp_path / "new"

        with pytest.raises(FileException, match="Failed to create file upload directory") as exc_info:
            request.move_file("photo", str(directory / "photo.jpg"))

        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_existing_unreadable_directory_is_left_alone(self, tmp_path, monkeypatch):
        """Test an existing directory that fails the read check raises and keeps its mode."""
        upload = create_upload(tmp_path)
        directory = tmp_path / "private"
        directory.mkdir()
        os.chmod(directory, 0o700)
        request = create_request({"photo": upload})

        real_access = os.access
        monkeypatch.setattr(
            os, "access", lambda path, mode: str(path) != str(directory) and real_access(path, mode)
        )

        with pytest.raises(FileException, match="Failed to create file upload directory"):
            request.move_file("photo", str(directory / "photo.jpg"))

        assert mode_of(directory) == 0o700
        assert not (directory / "photo.jpg").exists()
        assert os.path.exists(upload.temp_path)


class TestMoveFileSuppressedErrors:
    """Test best-effort steps fail quietly and are reported to the callback."""

    def test_missing_directory_without_create(self, tmp_path):
        """Test create=False with a missing directory returns False."""
        upload = create_upload(tmp_path)
        errors = SuppressedErrors()
        request = create_request({"photo": upload}, errors)
        destination = tmp_path / "missing" / "photo.jpg"

        assert request.move_file("photo", str(destination), create=False) is False
        assert not (tmp_path / "missing").exists()
        assert [(op, path) for op, path, _ in errors] == [("move", str(destination))]

    def test_move_failure(self, tmp_path):
        """Test a vanished temp file makes the move return False."""
        upload = create_upload(tmp_path)
        upload.cleanup()
        errors = SuppressedErrors()
        request = create_request({"photo": upload}, errors)

        assert request.move_file("photo", str(tmp_path / "photo.jpg")) is False
        assert len(errors) == 1
        assert errors[0][0] == "move"
        assert isinstance(errors[0][2], FileNotFoundError)

    def test_chmod_failure_still_succeeds(self, tmp_path, monkeypatch):
        """Test a failing chmod is reported but the move still counts."""
        upload = create_upload(tmp_path)
        errors = SuppressedErrors()
        request = create_request({"photo": upload}, errors)
        destination = tmp_path / "photo.jpg"

        def failing_chmod(*args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr(os, "chmod", failing_chmod)

        assert request.move_file("photo", str(destination)) is True
        assert destination.exists()
        assert [(op, path) for op, path, _ in errors] == [("chmod", str(destination))]

    def test_without_callback(self, tmp_path):
        """Test suppressed errors need no callback."""
        upload = create_upload(tmp_path)
        upload.cleanup()
        request = create_request({"photo": upload})

        assert request.move_file("photo", str(tmp_path / "photo.jpg")) is False
