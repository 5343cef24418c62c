from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..core.config import settings


def build_engine(database_url: str | None = None, **kwargs) -> AsyncEngine:
    return create_async_engine(database_url or settings.database_url, echo=settings.database_echo, **kwargs)
