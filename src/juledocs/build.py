"""Static site build: set up the highlighter, then render every page.

Usage:
    juledocs-build

Settings come from ``JULEDOCS_*`` environment variables (see
:class:`juledocs.config.Settings`).  Every page is rendered in memory
before anything is written, so a failed build publishes nothing.
"""

import asyncio
import logging
import sys
from html import escape
from pathlib import Path

from markdown_it import MarkdownIt

from juledocs.config import Settings
from juledocs.dependencies import get_settings
from juledocs.errors import HighlightError
from juledocs.models.documents import LanguageDescriptor
from juledocs.services.highlighter import Highlighter, initialize, register_language
from juledocs.services.loader import load_grammar, load_theme
from juledocs.services.markdown import create_renderer, render_markdown

logger = logging.getLogger(__name__)

PAGE_TEMPLATE = """\
<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
</head>
<body>
{body}</body>
</html>
"""


async def setup_highlighter(settings: Settings) -> Highlighter:
    """Load, initialise, and register in order, returning a frozen highlighter.

    Any failure aborts before a single page is rendered.
    """
    grammar = await load_grammar(settings.grammar_path)
    theme = await load_theme(settings.theme_path)
    descriptor = LanguageDescriptor(
        id=settings.language_id,
        name=settings.language_name,
        scope_name=settings.language_scope,
        display_name=settings.language_name,
        aliases=frozenset(settings.language_aliases),
        grammar=grammar,
    )

    handle = await initialize(theme)
    await register_language(handle, descriptor)
    return handle.freeze(css_class=settings.code_css_class)


def page_title(markdown: str, fallback: str) -> str:
    """Return the first ``# heading`` of *markdown*, or *fallback*."""
    for line in markdown.splitlines():
        if line.startswith("# "):
            return line[2:].strip()
    return fallback


def render_pages(md: MarkdownIt, docs_dir: Path) -> dict[Path, str]:
    """Render every ``*.md`` under *docs_dir*, keyed by relative output path."""
    pages: dict[Path, str] = {}
    for source in sorted(docs_dir.rglob("*.md")):
        markdown = source.read_text(encoding="utf-8")
        relative = source.relative_to(docs_dir).with_suffix(".html")
        pages[relative] = PAGE_TEMPLATE.format(
            title=escape(page_title(markdown, source.stem)),
            body=render_markdown(md, markdown),
        )
        logger.debug("Rendered %s", relative)
    return pages


async def build_site(settings: Settings) -> list[Path]:
    """Build the site into ``settings.out_dir`` and return the written files."""
    if not settings.docs_dir.is_dir():
        msg = f"Docs directory '{settings.docs_dir}' does not exist"
        raise FileNotFoundError(msg)

    highlighter = await setup_highlighter(settings)
    pages = render_pages(create_renderer(highlighter), settings.docs_dir)

    written: list[Path] = []
    for relative, html in pages.items():
        output = settings.out_dir / relative
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(html, encoding="utf-8")
        written.append(output)
    return written


def main() -> int:
    """Run the build; return a process exit code."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        written = asyncio.run(build_site(settings))
    except (HighlightError, FileNotFoundError) as exc:
        logger.error("Build failed: %s", exc)
        return 1

    logger.info("Built %d page(s) into %s", len(written), settings.out_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
