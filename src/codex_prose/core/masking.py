"""Ignore-pattern masking.

Regions matching configured ignore patterns are swapped for placeholder
templates so later stages see them as code instead of prose. Masking is
regex based; per-format behaviour is isolated behind ``SpanMasker`` so a
structural masker can replace it for a single format.
"""

from __future__ import annotations

import fnmatch
import logging
import re
import textwrap
from collections.abc import Callable, Iterable, Mapping
from typing import Protocol

from codex_prose.errors import ConfigPatternError
from codex_prose.models import Document
from codex_prose.settings import IgnoreRules, PlaceholderTemplate

logger = logging.getLogger(__name__)

_FRONT_MATTER = re.compile(r"^(?:---|\+\+\+)\n(.+?)\n(?:---|\+\+\+)", re.DOTALL)
_BRACES = re.compile(r"\{([^{}]*)\}")

LITERAL_INDENT = "    "


class SpanMasker(Protocol):
    def replace(self, text: str, pattern: re.Pattern[str], template: PlaceholderTemplate) -> str: ...


class RegexMasker:
    """Replace every match in one pass.

    The placeholder wraps the first capture group when the pattern has one,
    otherwise the whole match. Text matched outside the group is dropped.
    """

    def replace(self, text: str, pattern: re.Pattern[str], template: PlaceholderTemplate) -> str:
        group = 1 if pattern.groups else 0
        return pattern.sub(lambda match: template.render(match.group(group) or ""), text)


class IndentedLiteralMasker:
    """Indent each match under a literal-block directive.

    reStructuredText literal blocks must be indented relative to the ``::``
    marker, so each match is indented before rendering. Matches are collected
    up front and each replaces the first occurrence after the previous
    replacement.
    """

    def __init__(self, indent: str = LITERAL_INDENT) -> None:
        self.indent = indent

    def replace(self, text: str, pattern: re.Pattern[str], template: PlaceholderTemplate) -> str:
        cursor = 0
        for matched in [match.group(0) for match in pattern.finditer(text)]:
            if not matched:
                continue
            index = text.find(matched, cursor)
            if index < 0:
                continue
            rendered = template.render(textwrap.indent(matched, self.indent, lambda _line: True))
            text = text[:index] + rendered + text[index + len(matched) :]
            cursor = index + len(rendered)
        return text


DEFAULT_MASKER: SpanMasker = RegexMasker()
BLOCK_MASKERS: Mapping[str, SpanMasker] = {".rst": IndentedLiteralMasker()}


def _expand_braces(glob: str) -> list[str]:
    match = _BRACES.search(glob)
    if match is None:
        return [glob]
    head, tail = glob[: match.start()], glob[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(_expand_braces(f"{head}{option}{tail}"))
    return expanded


def glob_match(glob: str, exts: Iterable[str]) -> bool:
    """Match a syntax glob such as ``*.{md,txt}`` against any of ``exts``."""
    patterns = _expand_braces(glob)
    return any(fnmatch.fnmatchcase(ext, pattern) for ext in exts for pattern in patterns)


def _compile(pattern: str, source: str | None) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ConfigPatternError(pattern, source, str(exc)) from exc


def _apply(
    text: str,
    rules: Mapping[str, list[str]],
    exts: tuple[str, ...],
    template: PlaceholderTemplate,
    masker: SpanMasker,
    source: str | None,
    matcher: Callable[[str, Iterable[str]], bool],
) -> str:
    for syntax, patterns in rules.items():
        if not matcher(syntax, exts):
            continue
        logger.debug("Applying %d ignore pattern(s) for %s", len(patterns), syntax)
        for raw in patterns:
            pattern = _compile(raw, source)
            try:
                text = masker.replace(text, pattern, template)
            except re.error as exc:
                raise ConfigPatternError(raw, source, str(exc)) from exc
    return text


def strip_front_matter(text: str, block: PlaceholderTemplate) -> str:
    return _FRONT_MATTER.sub(lambda match: block.render(match.group(0)), text, count=1)


def mask(
    document: Document,
    block: PlaceholderTemplate,
    inline: PlaceholderTemplate,
    rules: IgnoreRules,
    matcher: Callable[[str, Iterable[str]], bool] = glob_match,
) -> str:
    """Return the document's content with ignored regions replaced by placeholders.

    Raises ``ConfigPatternError`` when an ignore pattern cannot be compiled or
    applied; the error names the pattern and the rule source.
    """
    exts = document.extensions
    text = strip_front_matter(document.content, block)
    block_masker = BLOCK_MASKERS.get(document.normed_ext, DEFAULT_MASKER)
    text = _apply(text, rules.block, exts, block, block_masker, rules.source, matcher)
    return _apply(text, rules.token, exts, inline, DEFAULT_MASKER, rules.source, matcher)
