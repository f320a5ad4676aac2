import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from identity_seed.app_shell.config import load_settings
from identity_seed.app_shell.context import ServiceContext
from identity_seed.app_shell.startup import StartupError, run_startup
from identity_seed.shell.http.health import create_health_router

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Run startup before serving (fail-fast)."""
    try:
        settings = load_settings()
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Rules load failed: {e}")
        sys.exit(1)

    ctx = ServiceContext.create(settings)
    try:
        app.state.startup_report = run_startup(ctx)
    except StartupError:
        sys.exit(1)

    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Identity Seed",
        version=VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )
    app.include_router(create_health_router(version=VERSION))
    return app


app = create_app()
