"""Pydantic v2 response and request schemas."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    app_name: str
    ready: bool


class RenderRequest(BaseModel):
    """A single code block to highlight."""

    code: str
    language: str = ""


class MarkdownRequest(BaseModel):
    """A Markdown document to render."""

    markdown: str


class RenderResponse(BaseModel):
    """Rendered HTML fragment."""

    html: str


class LanguagesResponse(BaseModel):
    """Custom language tags registered with the highlighter."""

    languages: list[str]
