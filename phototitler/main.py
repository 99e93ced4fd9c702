import logging
import os

from dotenv import load_dotenv

# Environment must be loaded before the database module reads DATABASE_URL
load_dotenv()

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.status import HTTP_502_BAD_GATEWAY  # noqa: E402

from phototitler.database import Base, SessionLocal, engine  # noqa: E402
from phototitler.errors import PhotoTitlerError  # noqa: E402
from phototitler.routers.export import router as export_router  # noqa: E402
from phototitler.routers.generate import router as generate_router  # noqa: E402
from phototitler.routers.login import router as login_router  # noqa: E402
from phototitler.routers.pdfs import router as pdfs_router  # noqa: E402
from phototitler.routers.photos import router as photos_router  # noqa: E402
from phototitler.routers.settings import router as settings_router  # noqa: E402
from phototitler.routers.themes import router as themes_router  # noqa: E402
from phototitler.storage import StorageError  # noqa: E402

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper(), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# Ensure database tables exist
Base.metadata.create_all(bind=engine)

app = FastAPI(title="phototitler")


@app.exception_handler(PhotoTitlerError)
async def photo_titler_error_handler(
    request: Request, exc: PhotoTitlerError
) -> JSONResponse:
    logger.warning(
        "%s on %s %s: %s",
        exc.__class__.__name__,
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=HTTP_502_BAD_GATEWAY, content={"detail": str(exc)})


app.include_router(login_router)
app.include_router(photos_router)
app.include_router(generate_router)
app.include_router(themes_router)
app.include_router(settings_router)
app.include_router(pdfs_router)
app.include_router(export_router)

# Reminder: JWT_SECRET_KEY and APP_PASSWORD must be set in the environment

__all__ = [
    "SessionLocal",
    "app",
]
