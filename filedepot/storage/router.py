"""FastAPI router for the upload, commit and download endpoints.

Endpoints:
    POST /upload                    - stage a file, returns {file_uuid}
    POST /set_avatar                - commit a staged image as <name>.png
    POST /set_answer, /set_test     - commit a staged file as <name>.txt
    GET  /avatar|answer|test/{name} - download a committed file (last path segment)

Upload and download report failures with HTTP status codes and a plain-text
body. The commit endpoints always answer 200 with a {success, message}
envelope, whatever went wrong.
"""
import logging
import stat
from typing import BinaryIO, Callable, Iterator

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile as StarletteUploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from .errors import FileDepotError, UploadTooLargeError
from .schemas import Category, CommitRequest, CommitResponse, UploadResponse
from .service import FileStore, guess_content_type

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

CHUNK_SIZE = 64 * 1024


def _store() -> FileStore:
    return FileStore.get_instance()


# =============================================================================
# Upload
# =============================================================================


@router.api_route("/upload", methods=ALL_METHODS, response_model=UploadResponse)
async def upload_file(request: Request):
    """Stage an uploaded file under a new identifier.

    The multipart form must carry the file in field ``file``.

    Returns:
        UploadResponse with the generated identifier.

    Errors (plain text):
        400: Malformed multipart body or no ``file`` field in the form.
        405: Any method other than POST.
        413: File larger than the configured ceiling.
        500: The file could not be written.
    """
    if request.method != "POST":
        return PlainTextResponse("Method not allowed", status_code=405)

    try:
        form = await request.form()
    except StarletteHTTPException as e:
        return PlainTextResponse(str(e.detail), status_code=400)
    except MultiPartException as e:
        return PlainTextResponse(e.message, status_code=400)

    try:
        file = form.get("file")
        if not isinstance(file, StarletteUploadFile):
            return PlainTextResponse("Missing form field: file", status_code=400)

        store = _store()
        try:
            # One byte past the ceiling is enough to detect an oversized upload.
            content = await file.read(store.max_upload_bytes + 1)
            file_uuid = store.save_upload(file.filename or "", content)
        except UploadTooLargeError as e:
            logger.warning("Rejected upload %s: %s", file.filename, e)
            return PlainTextResponse(str(e), status_code=413)
        except OSError as e:
            logger.error("Upload of %s failed: %s", file.filename, e)
            return PlainTextResponse(str(e), status_code=500)
    finally:
        await form.close()

    return UploadResponse(file_uuid=file_uuid)


# =============================================================================
# Commit
# =============================================================================


def _envelope(success: bool, message: str = "") -> CommitResponse:
    return CommitResponse(success=success, message=message)


def commit_handler(category: Category) -> Callable:
    """Build the commit endpoint for one category.

    The avatar and generic handlers differ only in what the store does with
    the staged file, so a single handler serves all three routes.
    """

    async def commit(request: Request) -> CommitResponse:
        if request.method != "POST":
            return _envelope(False, "Method not allowed")

        body = await request.body()
        try:
            req = CommitRequest.model_validate_json(body)
        except ValidationError:
            return _envelope(False, "Bad json")

        if not req.file_uuid or not req.file_name:
            return _envelope(False, "Missing parameters")

        try:
            _store().commit(category, req.file_uuid, req.file_name)
        except (FileDepotError, OSError) as e:
            logger.warning(
                "Commit of %s to %s as %r failed: %s",
                req.file_uuid, category.value, req.file_name, e,
            )
            return _envelope(False, str(e))

        return _envelope(True)

    commit.__name__ = f"set_{category.value}"
    commit.__doc__ = f"Commit a staged file into the {category.value} area."
    return commit


# =============================================================================
# Download
# =============================================================================


def _iter_file(fh: BinaryIO, name: str) -> Iterator[bytes]:
    with fh:
        try:
            for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
                yield chunk
        except OSError as e:
            # Headers are already sent; the server drops the connection.
            logger.error("Failed to copy %s to response: %s", name, e)
            raise


def download_handler(category: Category) -> Callable:
    """Build the download endpoint for one category."""

    async def download(filename: str) -> Response:
        path = _store().stored_path(category, filename)

        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return PlainTextResponse("File not found", status_code=404)
        except OSError as e:
            logger.error("Failed to stat %s: %s", path, e)
            return PlainTextResponse("Failed to stat file", status_code=500)

        if not stat.S_ISREG(st.st_mode):
            return PlainTextResponse("File not found", status_code=404)

        try:
            fh = path.open("rb")
        except OSError as e:
            logger.error("Failed to open %s: %s", path, e)
            return PlainTextResponse("Failed to open file", status_code=500)

        return StreamingResponse(
            _iter_file(fh, str(path)),
            media_type=guess_content_type(path.name),
            headers={"Content-Length": str(st.st_size)},
        )

    download.__name__ = f"download_{category.value}"
    download.__doc__ = f"Download a committed file from the {category.value} area."
    return download


for _category in Category:
    router.add_api_route(
        f"/set_{_category.value}",
        commit_handler(_category),
        methods=ALL_METHODS,
        response_model=CommitResponse,
    )
    router.add_api_route(
        f"/{_category.value}/{{filename:path}}",
        download_handler(_category),
        methods=ALL_METHODS,
    )
