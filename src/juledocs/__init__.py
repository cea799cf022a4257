"""Jule documentation site build with TextMate-grammar code highlighting."""
