import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notice_api.cache import cache
from notice_api.config import settings
from notice_api.dependencies import get_file_storage
from notice_api.errors import install_exception_handlers
from notice_api.middleware import TimingMiddleware
from notice_api.routers import files, metrics, notices

logger = logging.getLogger("notice_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.setLevel(settings.LOG_LEVEL.upper())
    get_file_storage()
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Cache unavailable, continuing without it: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()


app = FastAPI(
    title="Notice Board API",
    description="Notices with file attachments over a master/replica database split",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)

# Routers
app.include_router(notices.router)
app.include_router(files.router)
app.include_router(metrics.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
