from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator

from codex_prose.core.ports.rules import RuleEvaluator
from codex_prose.html.tokens import tokenize
from codex_prose.models import Document, Finding, TextBlock

logger = logging.getLogger(__name__)

_HEADING = re.compile(r"^h\d$")

DEFAULT_SKIPPED_TAGS = frozenset({"script", "style", "pre", "code", "tt"})

_VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)

_SCOPES = {
    "blockquote": "blockquote",
    "dd": "list",
    "dt": "list",
    "li": "list",
    "p": "paragraph",
    "td": "table.cell",
    "th": "table.header",
}

DISABLE_DIRECTIVE = "codex-prose off"
ENABLE_DIRECTIVE = "codex-prose on"


def _scope(stack: list[str]) -> str:
    for tag in reversed(stack):
        if _HEADING.match(tag):
            return f"heading.{tag}"
        if tag in _SCOPES:
            return _SCOPES[tag]
    return "text"


class _LineLocator:
    """Finds the 1-based line of successive text runs in the original document."""

    def __init__(self, content: str) -> None:
        self._content = content
        self._cursor = 0

    def locate(self, text: str) -> int | None:
        needle = text.strip().split("\n", 1)[0].strip()
        if not needle:
            return None
        index = self._content.find(needle, self._cursor)
        if index < 0:
            return None
        self._cursor = index + len(needle)
        return self._content.count("\n", 0, index) + 1


class HTMLLinter:
    """Walks HTML tokens and hands prose text to a rule evaluator."""

    def __init__(self, evaluator: RuleEvaluator, skipped_tags: Iterable[str] = DEFAULT_SKIPPED_TAGS) -> None:
        self.evaluator = evaluator
        self.skipped_tags = frozenset(skipped_tags)

    def lint(self, document: Document, html: bytes, base_offset: int = 0) -> Iterator[Finding]:
        """Yield findings lazily; each call re-tokenizes ``html`` from the start."""
        stack: list[str] = []
        enabled = True
        depth = 0
        locator = _LineLocator(document.content)

        for token in tokenize(html):
            if token.kind == "comment":
                directive = token.raw.strip().lower()
                if directive == DISABLE_DIRECTIVE:
                    enabled = False
                elif directive == ENABLE_DIRECTIVE:
                    enabled = True
                continue

            tag = token.tag or ""
            if token.kind == "tag":
                if tag in _VOID_TAGS:
                    continue
                stack.append(tag)
                if _HEADING.match(tag):
                    depth = int(tag[1])
                continue
            if token.kind == "end_tag":
                if tag in stack:
                    del stack[len(stack) - 1 - stack[::-1].index(tag) :]
                continue

            if not enabled or not token.raw.strip() or self.skipped_tags.intersection(stack):
                continue
            block = TextBlock(
                text=token.raw,
                scope=_scope(stack),
                offset=base_offset + token.offset,
                line=locator.locate(token.raw),
                depth=depth,
            )
            for payload in self.evaluator.evaluate(block):
                yield Finding(offset=block.offset, line=block.line, payload=payload)
        logger.debug("Finished HTML lint for %s", document.path)
