"""FastAPI application wiring for the alumni identity service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.errors import install_error_handlers
from .api.routes import router as v1_router
from .config import Settings, get_settings
from .domain.service import AccountService
from .repository import AccountRepository
from .security.passwords import PasswordHasher
from .security.tokens import TokenIssuer
from .storage import PUBLIC_PREFIX, ImageStore

logger = logging.getLogger(__name__)

settings = get_settings()


def build_service(repository: AccountRepository, config: Settings) -> AccountService:
    """Assemble the account service from process-wide configuration."""
    return AccountService(
        repository,
        PasswordHasher.from_settings(config),
        TokenIssuer.from_settings(config),
        ImageStore(config.upload_dir, max_bytes=config.max_upload_bytes),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, services) for the app lifecycle."""
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    repository = AccountRepository(pool)
    repository.ensure_schema()
    app.state.pool = pool
    app.state.account_service = build_service(repository, settings)
    logger.info("account service ready (uploads in %s)", settings.upload_dir)
    try:
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)

install_error_handlers(app, settings)

ImageStore(settings.upload_dir, max_bytes=settings.max_upload_bytes).ensure_root()
app.mount(PUBLIC_PREFIX, StaticFiles(directory=settings.upload_dir), name="uploads")


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)
