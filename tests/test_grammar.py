"""Tests for compiling TextMate grammars into Pygments lexers."""

from pathlib import Path
from typing import Any

import pytest
from pygments.token import Text, Token

from juledocs.errors import InvalidGrammarError
from juledocs.models.documents import GrammarDocument, LanguageDescriptor
from juledocs.services.grammar import (
    TextMateLexer,
    build_lexer,
    scope_to_token,
    translate_regex,
)


def _descriptor(grammar: dict[str, Any], language_id: str = "mini") -> LanguageDescriptor:
    data = {"scopeName": "source.mini", **grammar}
    return LanguageDescriptor(
        id=language_id,
        name="Mini",
        scope_name="source.mini",
        grammar=GrammarDocument(source=Path("mini.tmLanguage.json"), data=data),
    )


def _tokens(lexer_cls: type[TextMateLexer], text: str) -> list[tuple[Any, str]]:
    return list(lexer_cls().get_tokens(text))


# ── scope_to_token ────────────────────────────────────────────────────────────


def test_scope_to_token_maps_dotted_names() -> None:
    assert scope_to_token("keyword.control.jule") is Token.Keyword.Control.Jule
    assert scope_to_token("string") is Token.String


def test_scope_to_token_uses_most_specific_scope() -> None:
    assert scope_to_token("meta.block string.quoted") is Token.String.Quoted


def test_scope_to_token_default() -> None:
    assert scope_to_token(None) is Text
    assert scope_to_token("", Token.Comment) is Token.Comment


def test_scope_to_token_odd_segments() -> None:
    assert scope_to_token("entity.other.attribute-name") is getattr(
        Token.Entity.Other, "Attribute-name"
    )
    assert scope_to_token("constant.numeric.1x") is Token.Constant.Numeric.N1x


# ── translate_regex ───────────────────────────────────────────────────────────


def test_translate_named_groups() -> None:
    assert translate_regex(r"(?<word>\w+)\s\k<word>") == r"(?P<word>\w+)\s(?P=word)"


def test_translate_keeps_lookbehind() -> None:
    assert translate_regex(r"(?<=a)b(?<!c)") == r"(?<=a)b(?<!c)"


def test_translate_end_of_input() -> None:
    assert translate_regex(r"foo\z") == r"foo\Z"


# ── Bundled Jule grammar ─────────────────────────────────────────────────────


@pytest.fixture
async def jule_lexer(jule_descriptor: LanguageDescriptor) -> type[TextMateLexer]:
    return build_lexer(jule_descriptor)


@pytest.mark.asyncio
async def test_jule_lexer_metadata(jule_lexer: type[TextMateLexer]) -> None:
    assert jule_lexer.scope_name == "source.jule"
    assert jule_lexer.aliases == ["jule"]


@pytest.mark.asyncio
async def test_jule_let_statement(jule_lexer: type[TextMateLexer]) -> None:
    tokens = _tokens(jule_lexer, "let x = 1")
    assert (Token.Keyword.Other.Jule, "let") in tokens
    assert (Token.Keyword.Operator.Assignment.Jule, "=") in tokens
    assert (Token.Constant.Numeric.Decimal.Jule, "1") in tokens
    assert (Text, "x") in tokens


@pytest.mark.asyncio
async def test_jule_keywords_need_word_boundaries(jule_lexer: type[TextMateLexer]) -> None:
    tokens = _tokens(jule_lexer, "letter")
    assert all(token is Text for token, _ in tokens)


@pytest.mark.asyncio
async def test_jule_function_captures(jule_lexer: type[TextMateLexer]) -> None:
    tokens = _tokens(jule_lexer, "fn main() {}")
    assert tokens[0] == (Token.Storage.Type.Function.Jule, "fn")
    assert tokens[1] == (Text, " ")
    assert tokens[2] == (Token.Entity.Name.Function.Jule, "main")
    assert (Token.Punctuation.Section.Brackets.Jule, "(") in tokens


@pytest.mark.asyncio
async def test_jule_block_comment_spans_lines(jule_lexer: type[TextMateLexer]) -> None:
    tokens = _tokens(jule_lexer, "/* a\nb */ let")
    assert tokens[0] == (Token.Punctuation.Definition.Comment.Begin.Jule, "/*")
    assert (Token.Comment.Block.Jule, "\n") in tokens
    assert (Token.Comment.Block.Jule, "b") in tokens
    assert (Token.Punctuation.Definition.Comment.End.Jule, "*/") in tokens
    assert (Token.Keyword.Other.Jule, "let") in tokens


@pytest.mark.asyncio
async def test_jule_string_escapes(jule_lexer: type[TextMateLexer]) -> None:
    tokens = _tokens(jule_lexer, '"a\\n"')
    assert tokens[0] == (Token.Punctuation.Definition.String.Begin.Jule, '"')
    assert (Token.String.Quoted.Double.Jule, "a") in tokens
    assert (Token.Constant.Character.Escape.Jule, "\\n") in tokens
    assert (Token.Punctuation.Definition.String.End.Jule, '"') in tokens


@pytest.mark.asyncio
async def test_jule_line_comment(jule_lexer: type[TextMateLexer]) -> None:
    tokens = _tokens(jule_lexer, "let // note")
    assert (scope_to_token("comment.line.double-slash.jule"), "// note") in tokens


@pytest.mark.asyncio
async def test_no_error_tokens_for_unknown_characters(jule_lexer: type[TextMateLexer]) -> None:
    tokens = _tokens(jule_lexer, "let @ $ x")
    assert all(token is not Token.Error for token, _ in tokens)


# ── Grammar features ──────────────────────────────────────────────────────────


def test_content_name_applies_inside_block() -> None:
    lexer = build_lexer(
        _descriptor(
            {
                "patterns": [
                    {
                        "name": "meta.tag",
                        "contentName": "string.inner",
                        "begin": "<",
                        "end": ">",
                    }
                ]
            }
        )
    )
    tokens = _tokens(lexer, "<ab>")
    assert tokens[0] == (Token.Meta.Tag, "<")
    assert (Token.String.Inner, "a") in tokens
    assert (Token.Meta.Tag, ">") in tokens


def test_apply_end_pattern_last() -> None:
    rule = {
        "name": "meta.angle",
        "begin": "<",
        "end": ">",
        "patterns": [{"name": "keyword.operator.shift", "match": ">>"}],
    }
    late = build_lexer(_descriptor({"patterns": [{**rule, "applyEndPatternLast": 1}]}))
    early = build_lexer(_descriptor({"patterns": [rule]}))

    assert (Token.Keyword.Operator.Shift, ">>") in _tokens(late, "<a>>b>")
    assert (Token.Keyword.Operator.Shift, ">>") not in _tokens(early, "<a>>b>")


def test_capture_zero_replaces_rule_scope() -> None:
    lexer = build_lexer(
        _descriptor(
            {"patterns": [{"name": "meta.word", "match": "abc", "captures": {"0": {"name": "keyword"}}}]}
        )
    )
    assert (Token.Keyword, "abc") in _tokens(lexer, "abc")


def test_include_self_from_nested_block() -> None:
    lexer = build_lexer(
        _descriptor(
            {
                "patterns": [
                    {"name": "keyword", "match": "\\bkw\\b"},
                    {"name": "meta.group", "begin": "\\(", "end": "\\)", "patterns": [{"include": "$self"}]},
                ]
            }
        )
    )
    assert (Token.Keyword, "kw") in _tokens(lexer, "(kw)")


def test_recursive_repository_entries() -> None:
    lexer = build_lexer(
        _descriptor(
            {
                "patterns": [{"include": "#parens"}],
                "repository": {
                    "parens": {
                        "name": "meta.parens",
                        "begin": "\\(",
                        "end": "\\)",
                        "patterns": [{"include": "#parens"}, {"name": "constant.numeric", "match": "\\d+"}],
                    }
                },
            }
        )
    )
    tokens = _tokens(lexer, "((1))")
    assert (Token.Constant.Numeric, "1") in tokens
    assert tokens.count((Token.Meta.Parens, ")")) == 2


def test_repository_entry_including_itself() -> None:
    lexer = build_lexer(
        _descriptor(
            {
                "patterns": [{"include": "#expr"}],
                "repository": {
                    "expr": {
                        "patterns": [
                            {"include": "#expr"},
                            {"name": "keyword", "match": "\\bkw\\b"},
                            {"name": "meta.group", "begin": "\\(", "end": "\\)", "patterns": [{"include": "#expr"}]},
                        ]
                    }
                },
            }
        )
    )
    tokens = _tokens(lexer, "kw (kw (kw))")
    assert tokens.count((Token.Keyword, "kw")) == 3
    assert tokens.count((Token.Meta.Group, ")")) == 2


def test_mutually_including_entries_keep_rules_when_nested() -> None:
    lexer = build_lexer(
        _descriptor(
            {
                "patterns": [
                    {"include": "#a"},
                    {"name": "meta.group", "begin": "\\(", "end": "\\)", "patterns": [{"include": "#a"}]},
                ],
                "repository": {
                    "a": {"patterns": [{"name": "keyword", "match": "\\bkw\\b"}, {"include": "#b"}]},
                    "b": {"patterns": [{"name": "constant.numeric", "match": "\\d+"}, {"include": "#a"}]},
                },
            }
        )
    )
    for text in ("kw 1", "(kw 1)"):
        tokens = _tokens(lexer, text)
        assert (Token.Keyword, "kw") in tokens
        assert (Token.Constant.Numeric, "1") in tokens


def test_self_include_at_top_level_is_ignored() -> None:
    lexer = build_lexer(
        _descriptor({"patterns": [{"include": "$self"}, {"name": "keyword", "match": "\\bkw\\b"}]})
    )
    assert (Token.Keyword, "kw") in _tokens(lexer, "kw")


def test_captures_beyond_regex_groups_are_ignored() -> None:
    lexer = build_lexer(
        _descriptor(
            {
                "patterns": [
                    {
                        "name": "meta.word",
                        "match": "(kw)",
                        "captures": {"1": {"name": "keyword"}, "2": {"name": "string"}},
                    }
                ]
            }
        )
    )
    assert _tokens(lexer, "kw") == [(Token.Keyword, "kw"), (Text, "\n")]


def test_only_missing_captures_fall_back_to_rule_scope() -> None:
    lexer = build_lexer(
        _descriptor({"patterns": [{"name": "keyword", "match": "kw", "captures": {"3": {"name": "string"}}}]})
    )
    assert (Token.Keyword, "kw") in _tokens(lexer, "kw")


def test_oniguruma_named_groups_compile() -> None:
    lexer = build_lexer(
        _descriptor({"patterns": [{"name": "string.repeat", "match": "(?<w>[a-z]+)-\\k<w>"}]})
    )
    assert (Token.String.Repeat, "ab-ab") in _tokens(lexer, "ab-ab")


# ── Invalid grammars ──────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("grammar", "message"),
    [
        ({}, "patterns"),
        ({"patterns": [{"match": "("}]}, "does not compile"),
        ({"patterns": [{"include": "#missing"}]}, "unknown repository entry"),
        ({"patterns": [{"include": "source.other"}]}, "external grammar"),
        ({"patterns": [{"begin": "a"}]}, "without 'end'"),
        ({"patterns": [{"begin": "a", "while": "b"}]}, "begin'/'while"),
        ({"patterns": ["keyword"]}, "must be an object"),
        ({"patterns": [], "repository": []}, "repository"),
        ({"patterns": [{"match": 12}]}, "must be a string"),
    ],
)
def test_invalid_grammar(grammar: dict[str, Any], message: str) -> None:
    with pytest.raises(InvalidGrammarError, match=message):
        build_lexer(_descriptor(grammar))
