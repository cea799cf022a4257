"""Compile VS Code colour themes into Pygments styles.

Theme scope selectors map onto the Pygments token tree with the same
rule the grammar compiler uses (see :func:`scope_to_token`), so a
selector like ``keyword`` styles ``keyword.control.jule`` through
ordinary Pygments token inheritance.
"""

import logging
import re
from collections.abc import Iterator, Mapping
from typing import Any

from pygments.style import Style, StyleMeta
from pygments.token import _TokenType

from juledocs.errors import EngineInitError
from juledocs.models.documents import ThemeDocument
from juledocs.services.grammar import scope_to_token

logger = logging.getLogger(__name__)

_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

_FONT_STYLES = ("italic", "bold", "underline")


def normalise_color(value: Any, where: str) -> str:
    """Return *value* as ``#rgb`` or ``#rrggbb``, dropping any alpha channel."""
    if not isinstance(value, str) or not _COLOR.match(value):
        raise EngineInitError(f"{where}: invalid colour {value!r}")
    digits = value[1:]
    if len(digits) in (4, 8):
        digits = digits[: len(digits) * 3 // 4]
    return f"#{digits.lower()}"


def _selectors(scope: Any, where: str) -> Iterator[str]:
    """Yield the plain scope selectors of a theme rule."""
    if isinstance(scope, str):
        parts = scope.split(",")
    elif isinstance(scope, list):
        parts = scope
    else:
        raise EngineInitError(f"{where}: 'scope' must be a string or a list")

    for part in parts:
        if not isinstance(part, str):
            raise EngineInitError(f"{where}: scope selectors must be strings")
        selector = part.strip()
        if not selector:
            continue
        if " " in selector or selector.startswith("-"):
            # Descendant and exclusion selectors have no Pygments equivalent.
            logger.debug("Skipping unsupported theme selector %r", selector)
            continue
        yield selector


def _rule_attrs(settings: Mapping[str, Any], where: str) -> dict[str, str]:
    """Translate one rule's settings into Pygments style fragments."""
    attrs: dict[str, str] = {}
    if "foreground" in settings:
        attrs["color"] = normalise_color(settings["foreground"], where)
    if "background" in settings:
        attrs["bg"] = "bg:" + normalise_color(settings["background"], where)
    if "fontStyle" in settings:
        words = str(settings["fontStyle"]).split()
        attrs["font"] = " ".join(
            word if word in words else f"no{word}" for word in _FONT_STYLES
        )
    return attrs


def _default_colors(
    theme: ThemeDocument, global_settings: Mapping[str, Any]
) -> tuple[str, str]:
    colors = theme.data.get("colors")
    colors = colors if isinstance(colors, Mapping) else {}
    where = f"theme '{theme.name}'"

    background = colors.get("editor.background", global_settings.get("background"))
    foreground = colors.get("editor.foreground", global_settings.get("foreground"))
    if background is None or foreground is None:
        msg = f"{where} defines no editor background/foreground colours"
        raise EngineInitError(msg)
    return normalise_color(background, where), normalise_color(foreground, where)


def build_style(theme: ThemeDocument) -> type[Style]:
    """Compile *theme* into a Pygments ``Style`` subclass.

    The returned class carries an extra ``foreground_color`` attribute
    holding the editor foreground, which is applied to the enclosing
    ``<pre>`` rather than to every token.

    Raises ``EngineInitError`` if the theme is missing required keys or
    uses colours Pygments cannot express.
    """
    rules = theme.data.get("tokenColors", theme.data.get("settings"))
    if not isinstance(rules, list):
        msg = f"theme '{theme.name}' has no 'tokenColors' list"
        raise EngineInitError(msg)

    global_settings: dict[str, Any] = {}
    merged: dict[_TokenType, dict[str, str]] = {}

    for index, rule in enumerate(rules):
        where = f"theme '{theme.name}' tokenColors[{index}]"
        if not isinstance(rule, Mapping) or not isinstance(rule.get("settings"), Mapping):
            raise EngineInitError(f"{where}: rule needs a 'settings' object")
        settings = rule["settings"]

        if "scope" not in rule:
            global_settings.update(settings)
            continue

        attrs = _rule_attrs(settings, where)
        for selector in _selectors(rule["scope"], where):
            merged.setdefault(scope_to_token(selector), {}).update(attrs)

    background, foreground = _default_colors(theme, global_settings)
    styles = {
        token: " ".join(attrs[key] for key in ("font", "bg", "color") if key in attrs)
        for token, attrs in merged.items()
    }

    class_name = re.sub(r"\W+", "", theme.name.title()) or "Theme"
    style = StyleMeta(
        f"{class_name}Style",
        (Style,),
        {
            "name": theme.name,
            "background_color": background,
            "foreground_color": foreground,
            "styles": styles,
        },
    )
    logger.debug("Compiled theme '%s' with %d token styles", theme.name, len(styles))
    return style
