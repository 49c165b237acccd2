from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import cast

from tree_sitter import Language, Parser, Query
from tree_sitter_language_pack import SupportedLanguage, get_language, get_parser

from codex_prose.core.languages import normalize_language
from codex_prose.errors import ProfileBuildError, UnknownLanguageError
from codex_prose.models import OffsetAdjustment, QuerySpec

logger = logging.getLogger(__name__)

_QUERIES_DIR = Path(__file__).parent.parent / "queries"

# Drops the three quote bytes on each side of a triple-quoted string.
TRIPLE_QUOTE = OffsetAdjustment(start_row=0, start_column=3, end_row=0, end_column=-3)

_C_STYLE_DELIMITERS = r"//[/!]?\s?|/\*+!?\s?|\s*\*+/|^[ \t]*\*[ \t]?"

_PROFILE_DEFINITIONS: dict[str, tuple[str, tuple[tuple[str, OffsetAdjustment | None], ...]]] = {
    "python": (
        r"#\s?|\s*\"\"\"\s*|\s*'''\s*",
        (
            ("comment", None),
            ("function_docstring", TRIPLE_QUOTE),
            ("class_docstring", TRIPLE_QUOTE),
            ("module_docstring", TRIPLE_QUOTE),
        ),
    ),
    "go": (_C_STYLE_DELIMITERS, (("comment", None),)),
    "javascript": (_C_STYLE_DELIMITERS, (("comment", None),)),
    "typescript": (_C_STYLE_DELIMITERS, (("comment", None),)),
    "ruby": (r"#\s?|^=begin\s?|^=end\s?", (("comment", None),)),
    "rust": (_C_STYLE_DELIMITERS, (("comment", None), ("block_comment", None))),
}


@dataclass(frozen=True)
class LanguageProfile:
    """How to find prose in one programming language's source."""

    language: str
    delimiters: re.Pattern[str]
    parser: Parser
    grammar: Language
    queries: tuple[QuerySpec, ...]
    compiled: tuple[Query, ...]

    def strip_delimiters(self, text: str) -> str:
        return self.delimiters.sub("", text)

    def iter_queries(self) -> Iterator[tuple[QuerySpec, Query]]:
        return zip(self.queries, self.compiled, strict=True)


def _load_query_text(language: str, name: str) -> str:
    query_path = _QUERIES_DIR / language / f"{name}.scm"
    if not query_path.exists():
        raise FileNotFoundError(f"Query file not found: {query_path}")
    return query_path.read_text(encoding="utf-8")


def build_profile(language: str) -> LanguageProfile:
    if language not in _PROFILE_DEFINITIONS:
        raise UnknownLanguageError(language)
    delimiters, query_defs = _PROFILE_DEFINITIONS[language]
    specs: list[QuerySpec] = []
    compiled: list[Query] = []
    name = "<parser>"
    try:
        grammar = get_language(cast(SupportedLanguage, language))
        parser = get_parser(cast(SupportedLanguage, language))
        for name, offset in query_defs:
            spec = QuerySpec(name=name, pattern=_load_query_text(language, name), offset=offset)
            compiled.append(Query(grammar, spec.pattern))
            specs.append(spec)
    except (OSError, LookupError, NameError, SyntaxError, ValueError) as exc:
        raise ProfileBuildError(language, name, str(exc)) from exc

    return LanguageProfile(
        language=language,
        delimiters=re.compile(delimiters, re.MULTILINE),
        parser=parser,
        grammar=grammar,
        queries=tuple(specs),
        compiled=tuple(compiled),
    )


class LanguageRegistry:
    """Read-only lookup table from language identifier to profile."""

    def __init__(self, profiles: Mapping[str, LanguageProfile]) -> None:
        self._profiles: Mapping[str, LanguageProfile] = MappingProxyType(dict(profiles))

    def __contains__(self, language: object) -> bool:
        if not isinstance(language, str):
            return False
        try:
            self.lookup(language)
        except UnknownLanguageError:
            return False
        return True

    @property
    def languages(self) -> list[str]:
        return sorted(self._profiles)

    def lookup(self, language: str) -> LanguageProfile:
        try:
            return self._profiles[normalize_language(language)]
        except (KeyError, ValueError):
            raise UnknownLanguageError(language) from None


def build_default_registry(languages: list[str] | None = None) -> LanguageRegistry:
    """Compile every shipped profile up front; failures are fatal at startup."""
    selected = languages if languages is not None else list(_PROFILE_DEFINITIONS)
    profiles = {language: build_profile(language) for language in selected}
    logger.info("Built language profiles: %s", ", ".join(sorted(profiles)))
    return LanguageRegistry(profiles)
