import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from core.config import Settings, settings as default_settings
from routers import auth_router, message_router, survey_router, workshop_router
from storage.errors import BackendError, ConflictError, NotFoundError, StorageError, ValidationError
from storage.factory import build_storage
from storage.interface import Storage
from utils.email_service import EmailService
from utils.time_utils import utcnow

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFoundError: 404,
    ConflictError: 409,
    ValidationError: 422,
    BackendError: 503,
}


async def purge_verification_codes_periodically(storage: Storage, settings: Settings):
    retention = timedelta(hours=settings.VERIFICATION_RETENTION_HOURS)
    while True:
        await asyncio.sleep(settings.SESSION_CHECK_PERIOD_SECONDS)
        try:
            removed = await storage.purge_verification_codes(utcnow() - retention)
        except StorageError:
            logger.exception("Verification code purge failed")
            continue
        if removed:
            logger.info("Purged %d old verification codes", removed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    storage: Storage = app.state.storage
    await storage.init()
    storage.session_store.start()
    purge_task = asyncio.create_task(purge_verification_codes_periodically(storage, app.state.settings))
    try:
        yield
    finally:
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
        await storage.session_store.stop()
        await storage.close()


async def storage_error_handler(request: Request, exc: StorageError):
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error("Storage failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(settings: Settings = None) -> FastAPI:
    settings = settings or default_settings
    app = FastAPI(title="Membership Portal", lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = build_storage(settings)
    app.state.email_service = EmailService(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StorageError, storage_error_handler)

    app.include_router(auth_router.router, prefix="/auth", tags=["auth"])
    app.include_router(message_router.router, prefix="/messages", tags=["messages"])
    app.include_router(survey_router.router, prefix="/surveys", tags=["surveys"])
    app.include_router(workshop_router.router, prefix="/workshops", tags=["workshops"])

    @app.get("/")
    def root():
        return {"message": "Membership portal backend is running", "storage": settings.STORAGE_BACKEND}

    return app


if __name__ == "__main__":
    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
