from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from codex_prose.core.languages import language_for_extension
from codex_prose.core.masking import mask
from codex_prose.core.ports.rules import RuleEvaluator
from codex_prose.core.profiles import LanguageRegistry
from codex_prose.core.spans import extract_spans
from codex_prose.errors import CodexProseError
from codex_prose.html.linter import DEFAULT_SKIPPED_TAGS, HTMLLinter
from codex_prose.models import Document, Finding, TextBlock
from codex_prose.render.gateway import RendererGateway
from codex_prose.settings import MARKUP_TEMPLATES, IgnoreRules, MarkupTemplates

logger = logging.getLogger(__name__)

_PLAIN_TEMPLATES = MarkupTemplates.of("%s", "%s")


@dataclass
class LintReport:
    findings: dict[str, list[Finding]] = field(default_factory=dict)
    errors: dict[str, CodexProseError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def lint_source(
    document: Document, language: str, registry: LanguageRegistry, evaluator: RuleEvaluator
) -> list[Finding]:
    profile = registry.lookup(language)
    findings: list[Finding] = []
    for span in extract_spans(document.content.encode("utf-8"), profile):
        scope = "comment" if span.query.endswith("comment") else "docstring"
        block = TextBlock(text=span.text, scope=scope, offset=span.start_byte, line=span.start_point.row + 1)
        findings.extend(Finding(offset=block.offset, line=block.line, payload=p) for p in evaluator.evaluate(block))
    return findings


async def lint_document(
    document: Document,
    *,
    registry: LanguageRegistry,
    gateway: RendererGateway,
    evaluator: RuleEvaluator,
    rules: IgnoreRules | None = None,
    templates: MarkupTemplates | None = None,
    skipped_tags: Iterable[str] = DEFAULT_SKIPPED_TAGS,
) -> list[Finding]:
    """Run one document through mask -> render -> tokenize -> lint.

    Source-code documents skip rendering: their comments and docstrings are
    extracted with the language profile instead. ``templates`` overrides the
    placeholder templates registered for the document's format.
    """
    language = language_for_extension(document.normed_ext)
    if language is not None and language in registry:
        return lint_source(document, language, registry, evaluator)

    templates = templates or MARKUP_TEMPLATES.get(document.normed_ext, _PLAIN_TEMPLATES)
    masked = mask(document, templates.block, templates.inline, rules or IgnoreRules())
    html = await gateway.render(document, masked)
    linter = HTMLLinter(evaluator, skipped_tags)
    return list(linter.lint(document, html))


async def lint_paths(
    paths: Iterable[str | Path],
    *,
    registry: LanguageRegistry,
    gateway: RendererGateway,
    evaluator: RuleEvaluator,
    rules: IgnoreRules | None = None,
) -> LintReport:
    """Lint each path in turn; a failing document is recorded and skipped."""
    report = LintReport()
    for path in paths:
        key = str(path)
        try:
            document = Document.from_path(path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping %s: %s", key, exc)
            report.errors[key] = CodexProseError(f"{key}: {exc}")
            continue
        try:
            report.findings[key] = await lint_document(
                document, registry=registry, gateway=gateway, evaluator=evaluator, rules=rules
            )
        except CodexProseError as exc:
            logger.warning("Failed to lint %s: %s", key, exc)
            report.errors[key] = exc
            continue
        logger.debug("Linted %s: %d finding(s)", key, len(report.findings[key]))
    return report
