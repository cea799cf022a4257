"""Shared FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from juledocs.config import Settings
from juledocs.services.highlighter import Highlighter


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()


SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_highlighter(request: Request) -> Highlighter:
    """Return the app's frozen highlighter, or raise 503 while setup runs."""
    highlighter: Highlighter | None = getattr(request.app.state, "highlighter", None)
    if highlighter is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Highlighter not ready",
        )
    return highlighter


HighlighterDep = Annotated[Highlighter, Depends(get_highlighter)]
