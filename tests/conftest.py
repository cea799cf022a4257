"""Shared pytest fixtures."""

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest

from juledocs.config import RESOURCES_DIR
from juledocs.main import app
from juledocs.models.documents import LanguageDescriptor
from juledocs.services.highlighter import Highlighter, initialize, register_language
from juledocs.services.loader import load_grammar, load_theme

GRAMMAR_PATH = RESOURCES_DIR / "jule.tmLanguage.json"
THEME_PATH = RESOURCES_DIR / "jule-dark.json"


@pytest.fixture
def grammar_path() -> Path:
    return GRAMMAR_PATH


@pytest.fixture
def theme_path() -> Path:
    return THEME_PATH


@pytest.fixture
async def jule_descriptor() -> LanguageDescriptor:
    """Descriptor for the bundled Jule grammar."""
    grammar = await load_grammar(GRAMMAR_PATH)
    return LanguageDescriptor(
        id="jule",
        name="Jule",
        scope_name="source.jule",
        grammar=grammar,
    )


@pytest.fixture
async def highlighter(jule_descriptor: LanguageDescriptor) -> Highlighter:
    """A frozen highlighter with the bundled theme and Jule registered."""
    handle = await initialize(await load_theme(THEME_PATH))
    await register_language(handle, jule_descriptor)
    return handle.freeze()


@pytest.fixture
async def client(highlighter: Highlighter) -> AsyncIterator[httpx.AsyncClient]:
    """Provide an async HTTP client bound to the FastAPI app.

    ``ASGITransport`` does not run the lifespan, so the highlighter is
    installed on ``app.state`` directly.
    """
    app.state.highlighter = highlighter
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.state.highlighter = None
