"""Server-side Markdown → HTML rendering via markdown-it-py.

Each renderer is a ``MarkdownIt`` instance whose ``fence`` rule is
replaced by one that hands the block to a frozen
:class:`~juledocs.services.highlighter.Highlighter`.  Other render rules
can be swapped with :func:`set_render_rule`.

Example, rendering a page::

    from juledocs.services.markdown import create_renderer, render_markdown

    md = create_renderer(highlighter)
    html = render_markdown(md, "```jule\\nlet x = 1\\n```")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from markdown_it import MarkdownIt
from markdown_it.common.utils import unescapeAll
from markdown_it.renderer import RendererHTML, RendererProtocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from markdown_it.token import Token
    from markdown_it.utils import EnvType, OptionsDict

    from juledocs.services.highlighter import Highlighter

# ── Types for custom render rules ────────────────────────────────────────────


class RenderRule(Protocol):
    """Signature accepted by ``RendererHTML.rules``."""

    def __call__(
        self,
        renderer: RendererProtocol,
        tokens: Sequence[Token],
        idx: int,
        options: OptionsDict,
        env: EnvType,
    ) -> str: ...


def fence_language(info: str) -> str:
    """Return the language tag from a fence info string (``jule title=x`` → ``jule``)."""
    info = unescapeAll(info).strip() if info else ""
    return info.split(maxsplit=1)[0] if info else ""


def make_fence_rule(highlighter: Highlighter) -> RenderRule:
    """Build a ``fence`` rule that renders code blocks with *highlighter*."""

    def fence(
        _renderer: RendererProtocol,
        tokens: Sequence[Token],
        idx: int,
        _options: OptionsDict,
        _env: EnvType,
    ) -> str:
        token = tokens[idx]
        return highlighter.render(token.content, fence_language(token.info)) + "\n"

    return fence


# ── Renderer construction ────────────────────────────────────────────────────


def set_fence_renderer(md: MarkdownIt, rule: RenderRule) -> None:
    """Override the ``fence`` (fenced code block) render rule of *md*."""
    set_render_rule(md, "fence", rule)


def set_render_rule(md: MarkdownIt, name: str, rule: RenderRule) -> None:
    """Override an arbitrary render rule of *md* by token name.

    Common token names: ``fence``, ``code_inline``, ``code_block``,
    ``image``, ``link_open``, ``heading_open``, etc.
    """
    renderer = md.renderer
    if not isinstance(renderer, RendererHTML):
        msg = "Cannot override rules on a non-HTML renderer"
        raise TypeError(msg)
    # Binds *rule* to the renderer, which becomes its first argument.
    md.add_render_rule(name, rule)


def create_renderer(highlighter: Highlighter) -> MarkdownIt:
    """Return a ``MarkdownIt`` instance highlighting fences with *highlighter*."""
    md = MarkdownIt("commonmark", {"html": False, "typographer": True})
    md.enable("table")
    set_fence_renderer(md, make_fence_rule(highlighter))
    return md


# ── Public API ────────────────────────────────────────────────────────────────


def render_markdown(md: MarkdownIt, text: str) -> str:
    """Render a Markdown string to HTML.

    Returns an empty string for empty / whitespace-only input.
    """
    if not text or not text.strip():
        return ""
    return md.render(text)
