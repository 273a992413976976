"""File storage service for filedepot.

Handles the three filesystem steps of the workflow:

1. Staging: an upload is written to ``<root>/upload/<uuid><ext>``.
2. Commit: the staged file is located by globbing ``<uuid>*`` and either
   re-encoded as PNG (avatar) or moved verbatim (answer, test) into
   ``<root>/<category>/<name><ext>``.
3. Download: a committed file is looked up by name inside its category.

There is no index of identifiers; the filesystem is the only state.
Concurrent commits of the same identifier are not coordinated.
"""
import glob
import logging
import mimetypes
import os
import shutil
import uuid
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from ..config import DEFAULT_MAX_UPLOAD_BYTES
from .errors import (
    FileCopyError,
    ImageDecodeError,
    ImageEncodeError,
    InvalidFileNameError,
    SourceRemovalError,
    StagedFileNotFoundError,
    UploadTooLargeError,
)
from .schemas import Category, DEFAULT_CONTENT_TYPE, UPLOAD_SUBDIR

logger = logging.getLogger(__name__)

# Modes Pillow can write to PNG as-is; anything else is converted first.
_PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


def _has_separator(name: str) -> bool:
    seps = {os.sep, "/"}
    if os.altsep:
        seps.add(os.altsep)
    return any(sep in name for sep in seps)


def guess_content_type(filename: str) -> str:
    """Guess a MIME type from the file extension.

    Examples:
        >>> guess_content_type("me.png")
        'image/png'
        >>> guess_content_type("blob.unknownext")
        'application/octet-stream'
    """
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


def convert_to_png(src: Path, dst: Path) -> None:
    """Decode ``src`` with Pillow's format detection and write it as PNG.

    Raises:
        ImageDecodeError: If ``src`` is not a readable image. Nothing is
            written in that case.
        ImageEncodeError: If the PNG cannot be written. A partially written
            ``dst`` is removed.
    """
    try:
        source = Image.open(src)
    except (OSError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Cannot decode image: {e}") from e

    with source:
        try:
            source.load()
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            raise ImageDecodeError(f"Cannot decode image: {e}") from e

        try:
            image = source
            if image.mode not in _PNG_MODES:
                image = image.convert("RGBA" if image.mode.endswith("A") else "RGB")
            image.save(dst, format="PNG")
        except (OSError, ValueError) as e:
            dst.unlink(missing_ok=True)
            raise ImageEncodeError(f"Cannot encode image: {e}") from e


class FileStore:
    """Filesystem layout and operations for uploads and committed files."""

    _instance: Optional["FileStore"] = None

    def __init__(
        self,
        root_dir: Union[str, Path] = "files",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ) -> None:
        self._root = Path(root_dir)
        self.max_upload_bytes = max_upload_bytes

    @classmethod
    def get_instance(cls) -> "FileStore":
        """Get the installed store, or one with the default layout."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def set_instance(cls, store: Optional["FileStore"]) -> None:
        cls._instance = store

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    @property
    def root_dir(self) -> Path:
        return self._root

    @property
    def upload_dir(self) -> Path:
        return self._root / UPLOAD_SUBDIR

    def category_dir(self, category: Category) -> Path:
        return self._root / category.value

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def save_upload(self, filename: str, content: bytes) -> str:
        """Stage uploaded bytes under a fresh identifier.

        The original extension is kept as-is (including none at all).

        Args:
            filename: Client-supplied filename, only used for its extension.
            content: File bytes, written verbatim.

        Returns:
            The generated identifier (a 36-character UUID4 string).

        Raises:
            UploadTooLargeError: If ``content`` exceeds ``max_upload_bytes``.
            OSError: If the staging directory or file cannot be written.
        """
        size = len(content)
        if size > self.max_upload_bytes:
            raise UploadTooLargeError(size, self.max_upload_bytes)

        file_uuid = str(uuid.uuid4())
        ext = os.path.splitext(filename or "")[1]

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / f"{file_uuid}{ext}"
        path.write_bytes(content)

        logger.info("Staged upload %s as %s (%d bytes)", filename, path, size)
        return file_uuid

    def find_staged(self, file_uuid: str) -> Path:
        """Locate the staged file for an identifier.

        Matches ``<upload dir>/<file_uuid>*``. If several files match, the
        first one in sorted order is used.

        Raises:
            StagedFileNotFoundError: If nothing matches.
        """
        if not file_uuid or _has_separator(file_uuid):
            raise StagedFileNotFoundError(file_uuid)

        pattern = os.path.join(glob.escape(str(self.upload_dir)), glob.escape(file_uuid) + "*")
        matches = sorted(glob.glob(pattern))
        if not matches:
            raise StagedFileNotFoundError(file_uuid)
        if len(matches) > 1:
            logger.warning(
                "Identifier %s matches %d staged files, using %s",
                file_uuid, len(matches), matches[0],
            )
        return Path(matches[0])

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self, category: Category, file_uuid: str, file_name: str) -> Path:
        """Commit a staged file into ``category`` under ``file_name``.

        Avatars are re-encoded as PNG, other categories are moved verbatim.
        An existing committed file with the same name is overwritten.

        Returns:
            Path of the committed file.
        """
        self._check_file_name(file_name)
        src = self.find_staged(file_uuid)

        target_dir = self.category_dir(category)
        target_dir.mkdir(parents=True, exist_ok=True)
        dst = target_dir / f"{file_name}{category.extension}"

        if category is Category.AVATAR:
            convert_to_png(src, dst)
            self._remove_source(src)
        else:
            self.move_file(src, dst)

        logger.info("Committed %s to %s", src.name, dst)
        return dst

    def move_file(self, src: Path, dst: Path) -> None:
        """Copy ``src`` to ``dst`` byte for byte, then delete ``src``.

        ``src`` is opened before ``dst`` is touched, so an unreadable source
        leaves an earlier file at ``dst`` intact.

        Raises:
            FileCopyError: If the copy fails. A ``dst`` truncated by this
                call is removed.
            SourceRemovalError: If ``src`` cannot be deleted after a
                successful copy. Both files remain.
        """
        try:
            fsrc = src.open("rb")
        except OSError as e:
            raise FileCopyError(f"Couldn't open source file: {e}") from e

        with fsrc:
            try:
                fdst = dst.open("wb")
            except OSError as e:
                raise FileCopyError(f"Couldn't open dest file: {e}") from e
            try:
                with fdst:
                    shutil.copyfileobj(fsrc, fdst)
            except OSError as e:
                dst.unlink(missing_ok=True)
                raise FileCopyError(f"Couldn't copy file: {e}") from e

        self._remove_source(src)

    def _remove_source(self, src: Path) -> None:
        try:
            src.unlink()
        except OSError as e:
            logger.error("Committed copy of %s written but source not removed: %s", src, e)
            raise SourceRemovalError(f"Failed to remove source file: {e}") from e

    @staticmethod
    def _check_file_name(file_name: str) -> None:
        if file_name in (".", "..") or _has_separator(file_name) or "\x00" in file_name:
            raise InvalidFileNameError(file_name)

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    def stored_path(self, category: Category, filename: str) -> Path:
        """Return the path of a committed file.

        Only the final path component of ``filename`` is used.
        """
        return self.category_dir(category) / os.path.basename(filename)
