"""Compile TextMate grammars into Pygments lexers.

Pygments has no TextMate support, so each registered grammar is turned
into a :class:`~pygments.lexer.RegexLexer` subclass:

- ``match`` rules become single regex rules;
- ``begin``/``end`` rules push a generated state that pops on ``end``;
- ``include`` rules are expanded inline, cutting include cycles;
- scope names become token types (``keyword.control.jule`` →
  ``Token.Keyword.Control.Jule``), so themes style them through the
  normal Pygments token hierarchy.

Only what the compiler needs is validated.  Rule semantics beyond that
are the grammar author's responsibility.
"""

import itertools
import logging
import re
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from pygments.lexer import Lexer, RegexLexer, RegexLexerMeta
from pygments.token import Text, Token, _TokenType

from juledocs.errors import InvalidGrammarError, RenderError
from juledocs.models.documents import LanguageDescriptor

logger = logging.getLogger(__name__)

# Include marker for the grammar's top-level patterns (``$self``).
SELF_INCLUDE = "$self"

# Consecutive zero-width matches tolerated before a grammar is
# considered stuck.
MAX_EMPTY_MATCHES = 1000

_ONIGURUMA_REWRITES = (
    (re.compile(r"\(\?<(?![=!])"), "(?P<"),
    (re.compile(r"\\k<(\w+)>"), r"(?P=\1)"),
    (re.compile(r"(?<!\\)\\z"), r"\\Z"),
)

Action = _TokenType | Callable[[Lexer, re.Match[str]], Iterator[tuple[int, _TokenType, str]]]


def scope_to_token(scope: str | None, default: _TokenType = Text) -> _TokenType:
    """Map a dotted TextMate scope name onto a Pygments token type.

    When *scope* lists several space-separated scopes the last, most
    specific one is used.  An empty scope maps to *default*.
    """
    names = scope.split() if isinstance(scope, str) else []
    if not names:
        return default

    token = Token
    for part in names[-1].split("."):
        if not part:
            continue
        part = part[:1].upper() + part[1:]
        if not part[:1].isupper():
            part = "N" + part
        token = getattr(token, part)
    return token


def translate_regex(pattern: str) -> str:
    """Rewrite the Oniguruma-only syntax Python's ``re`` rejects."""
    for rewrite, replacement in _ONIGURUMA_REWRITES:
        pattern = rewrite.sub(replacement, pattern)
    return pattern


def _fallbacks(token: _TokenType) -> list[tuple[str, _TokenType]]:
    """Rules consuming characters no other rule in a state matched."""
    return [(r"\n", token), (r".", token)]


def _captures_callback(token: _TokenType, captures: dict[int, _TokenType]) -> Action:
    """Build a callback emitting *captures* and *token* for the rest of a match."""

    def callback(
        _lexer: Lexer, match: re.Match[str]
    ) -> Iterator[tuple[int, _TokenType, str]]:
        pos, stop = match.span()
        if pos == stop:
            yield pos, token, ""
            return
        for group in sorted(captures):
            start, end = match.span(group)
            # Unmatched groups report -1; nested groups start before pos.
            if start < pos or end <= start:
                continue
            if start > pos:
                yield pos, token, match.string[pos:start]
            yield start, captures[group], match.string[start:end]
            pos = end
        if pos < stop:
            yield pos, token, match.string[pos:stop]

    return callback


class TextMateLexer(RegexLexer):
    """Base class for lexers compiled from TextMate grammars."""

    flags = re.MULTILINE
    scope_name = ""

    def get_tokens_unprocessed(self, text, stack=("root",)):
        empty = 0
        for index, token, value in super().get_tokens_unprocessed(text, stack):
            if not value:
                empty += 1
                if empty > MAX_EMPTY_MATCHES:
                    msg = (
                        f"{self.name} grammar is stuck at offset {index}: "
                        "too many zero-width matches"
                    )
                    raise RenderError(msg)
                continue
            empty = 0
            yield index, token, value


class _GrammarCompiler:
    """Translate one grammar document into a Pygments ``tokens`` dict.

    Includes are expanded inline into the including state.  An include
    already being expanded for the same state contributes nothing, so
    repository entries may include themselves or each other.
    """

    def __init__(self, grammar: Mapping[str, Any], scope_name: str) -> None:
        self._grammar = grammar
        self._scope_name = scope_name
        repository = grammar.get("repository", {})
        if not isinstance(repository, Mapping):
            msg = f"{scope_name}: 'repository' must be an object"
            raise InvalidGrammarError(msg)
        self._repository = repository
        self._states: dict[str, list[Any]] = {}
        # begin/end rules already compiled, keyed by rule identity and default token.
        self._blocks: dict[tuple[int, _TokenType], str] = {}
        self._counter = itertools.count(1)

    def compile(self) -> dict[str, list[Any]]:
        patterns = self._grammar.get("patterns")
        if not isinstance(patterns, list):
            msg = f"{self._scope_name}: grammar has no top-level 'patterns' list"
            raise InvalidGrammarError(msg)
        rules = self._rules(patterns, "patterns", Text, frozenset({SELF_INCLUDE}))
        self._states["root"] = [*rules, *_fallbacks(Text)]
        return self._states

    def _rules(
        self, patterns: Any, where: str, default: _TokenType, active: frozenset[str]
    ) -> list[Any]:
        if not isinstance(patterns, list):
            msg = f"{self._scope_name}: {where} must be a list"
            raise InvalidGrammarError(msg)
        rules: list[Any] = []
        for index, rule in enumerate(patterns):
            rules.extend(self._rule(rule, f"{where}[{index}]", default, active))
        return rules

    def _rule(
        self, rule: Any, where: str, default: _TokenType, active: frozenset[str]
    ) -> list[Any]:
        if not isinstance(rule, Mapping):
            msg = f"{self._scope_name}: {where} must be an object"
            raise InvalidGrammarError(msg)

        if "include" in rule:
            return self._include(rule["include"], where, default, active)

        if "match" in rule:
            regex = self._regex(rule["match"], where)
            return [(regex, self._action(regex, rule.get("name"), rule.get("captures"), where, default))]

        if "begin" in rule:
            if "while" in rule:
                msg = f"{self._scope_name}: {where} uses unsupported 'begin'/'while'"
                raise InvalidGrammarError(msg)
            if "end" not in rule:
                msg = f"{self._scope_name}: {where} has 'begin' without 'end'"
                raise InvalidGrammarError(msg)
            regex = self._regex(rule["begin"], where)
            captures = rule.get("beginCaptures", rule.get("captures"))
            action = self._action(regex, rule.get("name"), captures, where, default)
            return [(regex, action, self._begin_end_state(rule, where, default))]

        if "patterns" in rule:
            return self._rules(rule["patterns"], f"{where}.patterns", default, active)

        logger.debug("%s: ignoring empty rule at %s", self._scope_name, where)
        return []

    def _begin_end_state(self, rule: Mapping[str, Any], where: str, default: _TokenType) -> str:
        key = (id(rule), default)
        if key in self._blocks:
            return self._blocks[key]
        state = f"block{next(self._counter)}"
        self._blocks[key] = state
        self._states[state] = []

        outer = scope_to_token(rule.get("name"), default)
        inner = scope_to_token(rule.get("contentName"), outer)
        captures = rule.get("endCaptures", rule.get("captures"))
        end_regex = self._regex(rule["end"], f"{where}.end")
        end = (
            end_regex,
            self._action(end_regex, rule.get("name"), captures, where, default),
            "#pop",
        )
        nested = self._rules(rule.get("patterns", []), f"{where}.patterns", inner, frozenset())
        body = [*nested, end] if rule.get("applyEndPatternLast") else [end, *nested]
        self._states[state][:] = [*body, *_fallbacks(inner)]
        return state

    def _include(
        self, target: Any, where: str, default: _TokenType, active: frozenset[str]
    ) -> list[Any]:
        if not isinstance(target, str):
            msg = f"{self._scope_name}: {where} include must be a string"
            raise InvalidGrammarError(msg)

        if target in ("$self", "$base", self._scope_name):
            if SELF_INCLUDE in active:
                return []
            patterns = self._grammar["patterns"]
            return self._rules(patterns, "patterns", default, active | {SELF_INCLUDE})

        if target.startswith("#"):
            name = target[1:]
            entry = self._repository.get(name)
            if not isinstance(entry, Mapping):
                msg = f"{self._scope_name}: {where} includes unknown repository entry '{name}'"
                raise InvalidGrammarError(msg)
            if target in active:
                return []
            return self._rule(entry, f"repository.{name}", default, active | {target})

        msg = f"{self._scope_name}: {where} includes external grammar '{target}'"
        raise InvalidGrammarError(msg)

    def _regex(self, pattern: Any, where: str) -> str:
        if not isinstance(pattern, str):
            msg = f"{self._scope_name}: {where} regex must be a string"
            raise InvalidGrammarError(msg)
        translated = translate_regex(pattern)
        try:
            re.compile(translated, TextMateLexer.flags)
        except re.error as exc:
            msg = f"{self._scope_name}: {where} regex {pattern!r} does not compile: {exc}"
            raise InvalidGrammarError(msg) from exc
        return translated

    def _action(
        self, regex: str, name: Any, captures: Any, where: str, default: _TokenType
    ) -> Action:
        token = scope_to_token(name if isinstance(name, str) else None, default)
        if not captures:
            return token
        if not isinstance(captures, Mapping):
            msg = f"{self._scope_name}: {where} captures must be an object"
            raise InvalidGrammarError(msg)

        # Captures naming a group the regex lacks are ignored.
        group_count = re.compile(regex, TextMateLexer.flags).groups
        groups: dict[int, _TokenType] = {}
        for key, capture in captures.items():
            if not str(key).isdigit() or not isinstance(capture, Mapping):
                continue
            if int(key) > group_count:
                logger.debug("%s: %s ignores capture %s", self._scope_name, where, key)
                continue
            groups[int(key)] = scope_to_token(capture.get("name"), token)

        if 0 in groups:
            token = groups.pop(0)
        if not groups:
            return token
        return _captures_callback(token, groups)


def build_lexer(descriptor: LanguageDescriptor) -> type[TextMateLexer]:
    """Compile *descriptor*'s grammar into a ready-to-use lexer class.

    Pygments processes token definitions lazily on first instantiation;
    this forces it so every grammar error surfaces here rather than
    while a page is rendering.
    """
    tokens = _GrammarCompiler(descriptor.grammar.data, descriptor.scope_name).compile()
    class_name = re.sub(r"\W+", "", descriptor.name.title()) or "Grammar"
    lexer_cls = RegexLexerMeta(
        f"{class_name}Lexer",
        (TextMateLexer,),
        {
            "name": descriptor.display_name or descriptor.name,
            "aliases": sorted(descriptor.tags),
            "filenames": [],
            "scope_name": descriptor.scope_name,
            "tokens": tokens,
        },
    )
    try:
        lexer_cls()
    except (AssertionError, ValueError) as exc:
        # Pygments rejects malformed state definitions.
        msg = f"{descriptor.scope_name}: {exc}"
        raise InvalidGrammarError(msg) from exc
    logger.debug("Compiled %s into %d lexer states", descriptor.scope_name, len(tokens))
    return lexer_cls
