"""Code block and Markdown rendering routes."""

from fastapi import APIRouter

from juledocs.dependencies import HighlighterDep
from juledocs.models.schemas import (
    LanguagesResponse,
    MarkdownRequest,
    RenderRequest,
    RenderResponse,
)
from juledocs.services.markdown import create_renderer, render_markdown

router = APIRouter(prefix="/api", tags=["render"])


@router.post("/render", response_model=RenderResponse)
def render_code(body: RenderRequest, highlighter: HighlighterDep) -> RenderResponse:
    """Highlight one code block."""
    return RenderResponse(html=highlighter.render(body.code, body.language))


@router.post("/render/markdown", response_model=RenderResponse)
def render_page(body: MarkdownRequest, highlighter: HighlighterDep) -> RenderResponse:
    """Render a Markdown document, highlighting its fenced code blocks."""
    md = create_renderer(highlighter)
    return RenderResponse(html=render_markdown(md, body.markdown))


@router.get("/languages", response_model=LanguagesResponse)
def list_languages(highlighter: HighlighterDep) -> LanguagesResponse:
    """Return the custom language tags the highlighter knows."""
    return LanguagesResponse(languages=highlighter.languages)
