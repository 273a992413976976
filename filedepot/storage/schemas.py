"""Pydantic schemas for the upload / commit / download workflow.

- Category: the storage areas a staged upload can be committed into
- UploadResponse: returned by POST /upload
- CommitRequest / CommitResponse: body and envelope of the /set_* endpoints

Uploads are staged under ``<root>/upload/<uuid><ext>``. A commit moves the
staged file to ``<root>/<category>/<name><category ext>``.
"""
from enum import Enum

from pydantic import BaseModel, Field


class Category(str, Enum):
    """Storage categories for committed files.

    - AVATAR: images, re-encoded as PNG
    - ANSWER: stored verbatim with a .txt extension
    - TEST: stored verbatim with a .txt extension
    """
    AVATAR = "avatar"
    ANSWER = "answer"
    TEST = "test"

    @property
    def extension(self) -> str:
        return CATEGORY_EXTENSIONS[self]


PNG_EXT = ".png"
TXT_EXT = ".txt"

CATEGORY_EXTENSIONS = {
    Category.AVATAR: PNG_EXT,
    Category.ANSWER: TXT_EXT,
    Category.TEST: TXT_EXT,
}

UPLOAD_SUBDIR = "upload"

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class UploadResponse(BaseModel):
    """Response after a successful upload."""
    file_uuid: str = Field(..., description="Identifier of the staged file")


class CommitRequest(BaseModel):
    """Body of a commit request.

    Missing fields default to empty strings so the handler can report
    them as missing parameters instead of a validation error.
    """
    file_uuid: str = Field("", description="Identifier returned by /upload")
    file_name: str = Field("", description="Base name for the committed file")


class CommitResponse(BaseModel):
    """Envelope returned by every commit endpoint, always with HTTP 200."""
    success: bool = Field(..., description="Whether the commit succeeded")
    message: str = Field("", description="Empty on success, otherwise the error")
