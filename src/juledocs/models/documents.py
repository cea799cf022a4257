"""Grammar, theme, and language descriptor models."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GrammarDocument(BaseModel):
    """A TextMate grammar loaded verbatim from disk.

    The rule data is opaque here; only the grammar compiler looks inside.
    """

    model_config = ConfigDict(frozen=True)

    source: Path
    data: dict[str, Any]

    @property
    def scope_name(self) -> str | None:
        """Return the grammar's root ``scopeName``, or ``None``."""
        scope = self.data.get("scopeName")
        return scope if isinstance(scope, str) and scope else None


class ThemeDocument(BaseModel):
    """A VS Code-style colour theme loaded verbatim from disk."""

    model_config = ConfigDict(frozen=True)

    source: Path
    data: dict[str, Any]

    @property
    def name(self) -> str:
        """Return the theme's declared name, falling back to the file stem."""
        name = self.data.get("name")
        return name if isinstance(name, str) and name else self.source.stem


class LanguageDescriptor(BaseModel):
    """Registration record binding a language id to its grammar.

    ``scope_name`` must equal the grammar's own ``scopeName``; the engine
    checks this when the descriptor is registered.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(pattern=r"^[a-z0-9][a-z0-9_+#.-]*$")
    name: str
    scope_name: str
    display_name: str | None = None
    aliases: frozenset[str] = frozenset()
    grammar: GrammarDocument

    @field_validator("aliases")
    @classmethod
    def _normalise_aliases(cls, value: frozenset[str]) -> frozenset[str]:
        return frozenset(alias.strip().lower() for alias in value if alias.strip())

    @property
    def tags(self) -> frozenset[str]:
        """Every fence tag this language answers to."""
        return self.aliases | {self.id}

    @classmethod
    def for_grammar(
        cls,
        language_id: str,
        name: str,
        grammar: GrammarDocument,
        *,
        display_name: str | None = None,
        aliases: frozenset[str] = frozenset(),
    ) -> "LanguageDescriptor":
        """Build a descriptor whose scope name is taken from *grammar*."""
        return cls(
            id=language_id,
            name=name,
            scope_name=grammar.scope_name or "",
            display_name=display_name,
            aliases=aliases,
            grammar=grammar,
        )
