from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

_EXTENSION_ALIASES = {
    ".adoc": ".adoc",
    ".asciidoc": ".adoc",
    ".htm": ".html",
    ".html": ".html",
    ".xhtml": ".html",
    ".markdown": ".md",
    ".md": ".md",
    ".mdown": ".md",
    ".mkd": ".md",
    ".rest": ".rst",
    ".rst": ".rst",
}


def normalize_extension(ext: str) -> str:
    """Fold an extension onto its canonical form (``.markdown`` -> ``.md``)."""
    lowered = ext.lower()
    return _EXTENSION_ALIASES.get(lowered, lowered)


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    row: int
    column: int


class OffsetAdjustment(BaseModel):
    """Row/column deltas applied to a capture's start and end points."""

    model_config = ConfigDict(frozen=True)

    start_row: int = 0
    start_column: int = 0
    end_row: int = 0
    end_column: int = 0


class QuerySpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    pattern: str
    offset: OffsetAdjustment | None = None


class ProseSpan(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    text: str
    raw: str
    start_byte: int
    end_byte: int
    start_point: Position
    end_point: Position
    adjusted: bool = False


class Document(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    normed_ext: str
    real_ext: str

    @classmethod
    def from_path(cls, path: str | Path) -> "Document":
        file_path = Path(path)
        return cls.from_text(file_path.read_text(encoding="utf-8"), str(file_path))

    @classmethod
    def from_text(cls, content: str, path: str) -> "Document":
        name = Path(path).name.lower()
        # ``.rst.txt`` is how Sphinx publishes sources.
        real_ext = ".rst.txt" if name.endswith(".rst.txt") else Path(path).suffix.lower()
        normed_ext = ".rst" if real_ext == ".rst.txt" else normalize_extension(real_ext)
        return cls(path=path, content=content, normed_ext=normed_ext, real_ext=real_ext)

    @property
    def extensions(self) -> tuple[str, str]:
        return self.normed_ext, self.real_ext


class HTMLToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text", "tag", "end_tag", "comment"]
    raw: str
    offset: int
    tag: str | None = None


class TextBlock(BaseModel):
    """A run of prose handed to the rule evaluator."""

    model_config = ConfigDict(frozen=True)

    text: str
    scope: str
    offset: int
    line: int | None = None
    depth: int = 0


class Finding(BaseModel):
    offset: int
    line: int | None = None
    payload: Any = None
