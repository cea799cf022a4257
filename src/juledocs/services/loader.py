"""Load grammar and theme documents from disk.

Both kinds of document use the same on-disk format: a JSON object
(``*.tmLanguage.json`` grammars and VS Code ``*.json`` themes).
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from juledocs.errors import MalformedDocumentError, ResourceNotFoundError
from juledocs.models.documents import GrammarDocument, ThemeDocument

logger = logging.getLogger(__name__)


def _read_object(path: Path) -> dict[str, Any]:
    """Read *path* and parse it as a JSON object."""
    if not path.exists():
        raise ResourceNotFoundError(path, "file does not exist")
    if not path.is_file():
        raise ResourceNotFoundError(path, "not a file")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ResourceNotFoundError(path, f"cannot be read ({exc})") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedDocumentError(path, f"invalid JSON ({exc})") from exc

    if not isinstance(data, dict):
        raise MalformedDocumentError(
            path, f"expected a JSON object, got {type(data).__name__}"
        )
    return data


async def load_grammar(path: Path) -> GrammarDocument:
    """Load a TextMate grammar from *path*."""
    data = await asyncio.to_thread(_read_object, path)
    logger.debug("Loaded grammar %s (scope %s)", path, data.get("scopeName"))
    return GrammarDocument(source=path, data=data)


async def load_theme(path: Path) -> ThemeDocument:
    """Load a colour theme from *path*."""
    data = await asyncio.to_thread(_read_object, path)
    logger.debug("Loaded theme %s", path)
    return ThemeDocument(source=path, data=data)
