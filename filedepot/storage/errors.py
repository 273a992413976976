"""Exceptions raised by the file store.

The router turns these into HTTP responses: plain-text status codes for
upload and download, a ``{success, message}`` envelope for commits. The
exception text is sent to the client unchanged.
"""


class FileDepotError(Exception):
    """Base class for file store failures."""


class UploadTooLargeError(FileDepotError):
    """The uploaded content exceeds the configured ceiling."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"File size ({size} bytes) exceeds limit ({limit} bytes)")
        self.size = size
        self.limit = limit


class InvalidFileNameError(FileDepotError):
    def __init__(self, name: str):
        super().__init__("Invalid file name")
        self.name = name


class StagedFileNotFoundError(FileDepotError):
    def __init__(self, file_uuid: str):
        super().__init__("File not found")
        self.file_uuid = file_uuid


class ImageDecodeError(FileDepotError):
    """The staged file is not an image Pillow can read."""


class ImageEncodeError(FileDepotError):
    """Writing the PNG failed."""


class FileCopyError(FileDepotError):
    """Copying the staged file into its category failed."""


class SourceRemovalError(FileDepotError):
    """The committed copy exists but the staged source could not be deleted."""
