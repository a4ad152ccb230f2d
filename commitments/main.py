import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from commitments.config import get_settings
from commitments.exceptions import PersistenceError

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: admin pair and user list in the key-value store
    from commitments.services.auth_service import initialize_auth
    from commitments.storage import get_kv_store

    initialize_auth(get_kv_store())

    # Startup: relational schema when records live in the database
    if settings.STORAGE_BACKEND == "remote":
        from commitments.database import init_db

        init_db()
        logger.info("Remote storage backend ready: %s", settings.DATABASE_URL.split("://")[0])
    else:
        logger.info("Local storage backend ready: %s", settings.DATA_DIR)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


@app.get(f"{settings.API_PREFIX}/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME, "storage": settings.STORAGE_BACKEND}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from commitments.routers import auth  # noqa: E402

app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])

# Batch header
from commitments.routers import header  # noqa: E402

app.include_router(header.router, prefix=f"{settings.API_PREFIX}/header", tags=["Header"])

# Records table, bulk edit, prefill
from commitments.routers import records  # noqa: E402

app.include_router(records.router, prefix=f"{settings.API_PREFIX}/records", tags=["Records"])

# XML export / import / verification
from commitments.routers import xml_io  # noqa: E402

app.include_router(xml_io.router, prefix=f"{settings.API_PREFIX}/xml", tags=["XML"])

# Sequence integrity
from commitments.routers import integrity  # noqa: E402

app.include_router(integrity.router, prefix=f"{settings.API_PREFIX}/integrity", tags=["Integrity"])

# PDF print
from commitments.routers import printing  # noqa: E402

app.include_router(printing.router, prefix=f"{settings.API_PREFIX}/print", tags=["Print"])

# Administration
from commitments.routers import admin  # noqa: E402

app.include_router(admin.router, prefix=f"{settings.API_PREFIX}/admin", tags=["Admin"])
