"""Upload staging, commit and download of files for filedepot.

Uploads land in a staging directory under a random identifier. A commit
gives a staged file its final name inside one of the categories:
- avatar: re-encoded as PNG
- answer, test: stored verbatim with a .txt extension

Committed files are served back by name, one download route per category.
"""

from .errors import (
    FileCopyError,
    FileDepotError,
    ImageDecodeError,
    ImageEncodeError,
    InvalidFileNameError,
    SourceRemovalError,
    StagedFileNotFoundError,
    UploadTooLargeError,
)
from .schemas import Category, CommitRequest, CommitResponse, UploadResponse
from .service import FileStore, convert_to_png, guess_content_type
from .router import router

__all__ = [
    "Category",
    "CommitRequest",
    "CommitResponse",
    "FileCopyError",
    "FileDepotError",
    "FileStore",
    "ImageDecodeError",
    "ImageEncodeError",
    "InvalidFileNameError",
    "SourceRemovalError",
    "StagedFileNotFoundError",
    "UploadResponse",
    "UploadTooLargeError",
    "convert_to_png",
    "guess_content_type",
    "router",
]
