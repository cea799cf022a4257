"""Exceptions raised while setting up the highlighter or rendering code.

Everything raised during setup is fatal for a build.  An unknown
language tag is *not* an error: it renders as plain text.
"""

from pathlib import Path


class HighlightError(Exception):
    """Base class for all highlighting failures."""


class DocumentError(HighlightError):
    """A grammar or theme document could not be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ResourceNotFoundError(DocumentError):
    """The document path is missing, not a file, or unreadable."""


class MalformedDocumentError(DocumentError):
    """The document is not a well-formed JSON object."""


class EngineInitError(HighlightError):
    """The theme cannot be applied to the highlighting engine."""


class DuplicateLanguageError(HighlightError):
    """A language id or alias is already registered on the engine."""

    def __init__(self, language: str) -> None:
        self.language = language
        super().__init__(f"Language '{language}' is already registered")


class InvalidGrammarError(HighlightError):
    """A grammar failed to compile into a lexer."""


class RenderError(HighlightError):
    """Tokenizing a particular code block failed."""
