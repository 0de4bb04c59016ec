"""
Forum API.

FastAPI application serving forum themes, discussions, categories and search.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forum_api import __version__
from forum_api.config import settings, validate_security_settings
from forum_api.database import init_db
from forum_api.errors import install_exception_handlers
from forum_api.middleware.rate_limit import limiter
from forum_api.middleware.request_id import RequestIDMiddleware
from forum_api.routers.categories import router as categories_router
from forum_api.routers.discussions import router as discussions_router
from forum_api.routers.search import router as search_router
from forum_api.routers.themes import router as themes_router

# Registers every table on Base.metadata
from forum_api import models  # noqa: F401

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("forum_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_security_settings()
    await init_db()
    logger.info("Forum API %s started (%s)", __version__, settings.environment)
    yield


app = FastAPI(
    title="Forum API",
    description="Themes, discussions and search for a community forum",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.state.limiter = limiter
install_exception_handlers(app)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)

for router in (themes_router, discussions_router, categories_router, search_router):
    app.include_router(router)


@app.get("/api/v2/health", tags=["System"])
async def health_check() -> dict[str, str]:
    """Returns 200 OK if the API is running."""
    return {"status": "healthy", "version": __version__}
