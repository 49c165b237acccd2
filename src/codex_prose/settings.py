import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

_SLOT = "%s"


class PlaceholderTemplate(BaseModel):
    """A placeholder with exactly one ``%s`` slot for the masked text."""

    model_config = ConfigDict(frozen=True)

    template: str

    @field_validator("template")
    @classmethod
    def _has_one_slot(cls, value: str) -> str:
        count = value.count(_SLOT)
        if count != 1:
            raise ValueError(f"Placeholder template must contain exactly one '%s' slot, found {count}: {value!r}")
        return value

    def render(self, captured: str) -> str:
        before, after = self.template.split(_SLOT)
        return f"{before}{captured}{after}"


class MarkupTemplates(BaseModel):
    model_config = ConfigDict(frozen=True)

    block: PlaceholderTemplate
    inline: PlaceholderTemplate

    @classmethod
    def of(cls, block: str, inline: str) -> "MarkupTemplates":
        return cls(block=PlaceholderTemplate(template=block), inline=PlaceholderTemplate(template=inline))


MARKUP_TEMPLATES: dict[str, MarkupTemplates] = {
    ".md": MarkupTemplates.of("\n```\n%s\n```\n", "`%s`"),
    ".rst": MarkupTemplates.of("\n::\n\n%s\n", "``%s``"),
    ".html": MarkupTemplates.of("<pre>%s</pre>", "<code>%s</code>"),
    ".adoc": MarkupTemplates.of("\n----\n%s\n----\n", "`%s`"),
}


class IgnoreRules(BaseModel):
    """Block and token ignore patterns keyed by syntax glob.

    Pattern order within a glob is significant: each pattern runs on the
    output of the previous one.
    """

    model_config = ConfigDict(frozen=True)

    block: dict[str, list[str]] = Field(default_factory=dict)
    token: dict[str, list[str]] = Field(default_factory=dict)
    source: str | None = None

    @classmethod
    def from_pairs(
        cls, block: list[str] | None = None, token: list[str] | None = None, source: str | None = None
    ) -> "IgnoreRules":
        """Build rules from ``GLOB=REGEX`` strings."""
        return cls(block=_group_pairs(block or []), token=_group_pairs(token or []), source=source)


def _group_pairs(pairs: list[str]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for pair in pairs:
        glob, sep, pattern = pair.partition("=")
        if not sep or not glob or not pattern:
            raise ValueError(f"Ignore rule must look like GLOB=REGEX, got {pair!r}")
        grouped.setdefault(glob, []).append(pattern)
    return grouped


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    renderer_url: str | None = None
    built: Path | None = None
    probe_timeout: float = 0.5
    request_timeout: float = 10.0


def get_settings(**overrides: object) -> Settings:
    """Read settings from ``CODEX_PROSE_*`` environment variables; non-``None`` overrides win."""
    values: dict[str, object] = {
        "renderer_url": os.getenv("CODEX_PROSE_RENDERER_URL") or None,
        "built": os.getenv("CODEX_PROSE_BUILT") or None,
        "probe_timeout": os.getenv("CODEX_PROSE_PROBE_TIMEOUT", "0.5"),
        "request_timeout": os.getenv("CODEX_PROSE_REQUEST_TIMEOUT", "10.0"),
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return Settings.model_validate(values)
