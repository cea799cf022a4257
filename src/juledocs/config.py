"""Build configuration via environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings

RESOURCES_DIR = Path(__file__).resolve().parent / "resources"


class Settings(BaseSettings):
    """Build settings loaded from environment variables."""

    app_name: str = "Jule Docs"
    debug: bool = False

    # Grammar and theme documents (JSON), shipped with the package.
    grammar_path: Path = RESOURCES_DIR / "jule.tmLanguage.json"
    theme_path: Path = RESOURCES_DIR / "jule-dark.json"

    # The custom language registered with the highlighter.
    language_id: str = "jule"
    language_name: str = "Jule"
    language_scope: str = "source.jule"
    language_aliases: list[str] = []

    # Markdown sources and rendered HTML output.
    docs_dir: Path = Path("docs")
    out_dir: Path = Path("site")

    code_css_class: str = "highlight"

    model_config = {"env_prefix": "JULEDOCS_"}
