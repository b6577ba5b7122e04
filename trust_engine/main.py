"""trust-engine FastAPI application."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from trust_engine.api import appeals, flags, health, moderation, ws
from trust_engine.core.config import settings

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app.include_router(health.router)
app.include_router(flags.router, prefix=settings.api_prefix)
app.include_router(appeals.router, prefix=settings.api_prefix)
app.include_router(moderation.router, prefix=settings.api_prefix)
app.include_router(ws.router)
