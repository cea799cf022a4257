"""Highlighter engine lifecycle: set up once, then render code blocks.

Setup and rendering are two separate phases with separate types:

1. ``await initialize(theme)`` returns an :class:`EngineHandle`;
   ``await register_language(handle, descriptor)`` adds languages to it.
2. ``handle.freeze()`` returns a :class:`Highlighter`, the only object
   that can render.  It is read-only, so any number of renders may run
   concurrently without locking.

Example::

    handle = await initialize(await load_theme(theme_path))
    await register_language(handle, descriptor)
    highlighter = handle.freeze()
    html = highlighter.render("let x = 1", "jule")
"""

import asyncio
import logging
from collections.abc import Mapping
from types import MappingProxyType

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.lexers.special import TextLexer
from pygments.style import Style
from pygments.util import ClassNotFound

from juledocs.errors import DuplicateLanguageError, InvalidGrammarError
from juledocs.models.documents import LanguageDescriptor, ThemeDocument
from juledocs.services.grammar import build_lexer
from juledocs.services.theme import build_style

logger = logging.getLogger(__name__)

DEFAULT_CSS_CLASS = "highlight"


# ── Setup phase ───────────────────────────────────────────────────────────────


class EngineHandle:
    """Setup-phase engine state: the compiled theme and registered languages."""

    def __init__(self, theme: ThemeDocument, style: type[Style]) -> None:
        self.theme = theme
        self.style = style
        self._lexers: dict[str, type[Lexer]] = {}
        self._lock = asyncio.Lock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def is_registered(self, tag: str) -> bool:
        """Return whether *tag* names a registered language or alias."""
        return tag.lower() in self._lexers

    def freeze(self, css_class: str = DEFAULT_CSS_CLASS) -> "Highlighter":
        """End the setup phase and return the render-phase view."""
        self._frozen = True
        return Highlighter(self.style, self._lexers, css_class=css_class)


async def initialize(theme: ThemeDocument) -> EngineHandle:
    """Compile *theme* and return a handle ready for language registration.

    Raises ``EngineInitError`` if the theme cannot be applied.
    """
    style = await asyncio.to_thread(build_style, theme)
    logger.info("Highlighter initialised with theme '%s'", theme.name)
    return EngineHandle(theme, style)


async def register_language(handle: EngineHandle, descriptor: LanguageDescriptor) -> None:
    """Compile *descriptor*'s grammar and register it on *handle*.

    Raises ``DuplicateLanguageError`` if its id or an alias is taken and
    ``InvalidGrammarError`` if the grammar does not compile or its root
    scope differs from ``descriptor.scope_name``.
    """
    async with handle._lock:
        if handle.frozen:
            msg = "Engine is frozen: register languages before calling freeze()"
            raise RuntimeError(msg)

        for tag in sorted(descriptor.tags):
            if tag in handle._lexers:
                raise DuplicateLanguageError(tag)

        grammar_scope = descriptor.grammar.scope_name
        if grammar_scope is None:
            msg = f"{descriptor.grammar.source}: grammar declares no 'scopeName'"
            raise InvalidGrammarError(msg)
        if grammar_scope != descriptor.scope_name:
            msg = (
                f"Language '{descriptor.id}' expects scope '{descriptor.scope_name}' "
                f"but {descriptor.grammar.source} declares '{grammar_scope}'"
            )
            raise InvalidGrammarError(msg)

        lexer_cls = await asyncio.to_thread(build_lexer, descriptor)
        for tag in descriptor.tags:
            handle._lexers[tag] = lexer_cls

    logger.info(
        "Registered language '%s' (%s) with tags %s",
        descriptor.id,
        descriptor.scope_name,
        ", ".join(sorted(descriptor.tags)),
    )


# ── Render phase ──────────────────────────────────────────────────────────────


class Highlighter:
    """Read-only renderer over a frozen set of languages."""

    def __init__(
        self,
        style: type[Style],
        lexers: Mapping[str, type[Lexer]],
        css_class: str = DEFAULT_CSS_CLASS,
    ) -> None:
        self.style = style
        self.css_class = css_class
        self._lexers = MappingProxyType(dict(lexers))

    @property
    def languages(self) -> list[str]:
        """Return the registered language tags, sorted."""
        return sorted(self._lexers)

    def lexer_for(self, language_tag: str) -> Lexer:
        """Return a lexer for *language_tag*, falling back to plain text."""
        tag = language_tag.strip().lower()
        lexer_cls = self._lexers.get(tag)
        if lexer_cls is not None:
            return lexer_cls()
        if not tag:
            return TextLexer()
        try:
            return get_lexer_by_name(tag)
        except ClassNotFound:
            logger.debug("Unknown language tag %r, rendering as plain text", language_tag)
            return TextLexer()

    def render(self, source_text: str, language_tag: str) -> str:
        """Render one code block as a themed HTML fragment.

        Leading and trailing whitespace is trimmed first.  Returns a
        ``<pre>`` whose ``<code>`` holds one ``<span class="line">`` per
        source line, tokens styled inline.
        """
        code = source_text.strip()
        formatter = HtmlFormatter(style=self.style, noclasses=True, nowrap=True)
        body = highlight(code, self.lexer_for(language_tag), formatter)

        lines = body.split("\n")
        if lines and not lines[-1]:
            lines.pop()

        background = self.style.background_color
        foreground = getattr(self.style, "foreground_color", None)
        pre_style = f"background-color:{background}"
        if foreground:
            pre_style += f";color:{foreground}"

        rendered = "\n".join(f'<span class="line">{line}</span>' for line in lines)
        return (
            f'<pre class="{self.css_class}" style="{pre_style}" tabindex="0">'
            f"<code>{rendered}</code></pre>"
        )
