# SPDX-FileCopyrightText: Copyright (c) 2024-2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""FastAPI main application module."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from buildtrack.database import close_db, init_db
from buildtrack.deps import get_settings
from buildtrack.errors import register_error_handlers
from buildtrack.routers import (
    auth,
    challenges,
    feed,
    github,
    health,
    live,
    notifications,
    profiles,
    projects,
    sessions,
    timer,
)
from buildtrack.services.realtime import shutdown_realtime, start_realtime
from buildtrack.timer import get_timer_registry
from buildtrack.timer.ticker import LiveTicker

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    await init_db()

    publisher = await start_realtime(settings.redis_url, enabled=settings.enable_realtime)
    app.state.ticker = LiveTicker(
        get_timer_registry(), publisher, interval=settings.live_tick_interval_seconds
    )
    app.state.ticker.start()

    yield
    # Shutdown
    await app.state.ticker.stop()
    await shutdown_realtime()
    await close_db()


# Rate limiter
limiter = Limiter(key_func=get_remote_address)

app = FastAPI(
    title=settings.api_title,
    description="Build-in-public tracker: timed build sessions, live streams and a social feed",
    version=settings.api_version,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_error_handlers(app)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(profiles.router)
app.include_router(projects.router)
app.include_router(sessions.router)
app.include_router(feed.router)
app.include_router(live.router)
app.include_router(timer.router)
app.include_router(notifications.router)
app.include_router(challenges.router)
app.include_router(github.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "BuildTrack API",
        "version": settings.api_version,
        "docs": "/api/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("buildtrack.main:app", host="0.0.0.0", port=8000, reload=True)
