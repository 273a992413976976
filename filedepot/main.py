"""filedepot backend application.

Composition root of the service: configures logging, installs the file
store built from the loaded config and registers the routers.

Modules:
    - config: config.json / YAML loading
    - storage: upload staging, commit into categories, downloads
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from filedepot import __version__
from filedepot.config import get_config
from filedepot.storage.router import router as storage_router
from filedepot.storage.service import FileStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# multipart logs every parsed part at DEBUG
for _noisy in ("multipart", "python_multipart", "PIL"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    store = FileStore(
        root_dir=config.storage.root_dir,
        max_upload_bytes=config.storage.max_upload_bytes,
    )
    FileStore.set_instance(store)
    logger.info(
        "File store ready: root=%s max_upload_bytes=%d",
        store.root_dir,
        store.max_upload_bytes,
    )

    yield  # Application runs here

    # Shutdown
    logger.info("Application shutdown complete")


app = FastAPI(
    title="filedepot API",
    description="Upload files, commit them into named categories and download them",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(storage_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}
