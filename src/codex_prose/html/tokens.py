from __future__ import annotations

from collections.abc import Iterator
from html.parser import HTMLParser

from codex_prose.models import HTMLToken

# Undecodable bytes survive as lone surrogates so offsets count the original bytes.
_ERRORS = "surrogateescape"


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8", _ERRORS))


def _clean(text: str) -> str:
    return text.encode("utf-8", _ERRORS).decode("utf-8", errors="replace")


class _TokenCollector(HTMLParser):
    """Collects tokens with the UTF-8 byte offset of their first character."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.pending: list[HTMLToken] = []
        # Indexed by the parser's 1-based line numbers.
        self._line_bytes: list[int] = [0]
        self._line_text: list[str] = [""]

    def add_line(self, line: str, byte_start: int) -> None:
        self._line_text.append(line)
        self._line_bytes.append(byte_start)

    def _offset(self) -> int:
        lineno, column = self.getpos()
        return self._line_bytes[lineno] + _byte_len(self._line_text[lineno][:column])

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        raw = _clean(self.get_starttag_text() or f"<{tag}>")
        self.pending.append(HTMLToken(kind="tag", raw=raw, offset=self._offset(), tag=tag))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.handle_starttag(tag, attrs)
        self.pending.append(HTMLToken(kind="end_tag", raw="", offset=self._offset(), tag=tag))

    def handle_endtag(self, tag: str) -> None:
        self.pending.append(HTMLToken(kind="end_tag", raw=f"</{tag}>", offset=self._offset(), tag=tag))

    def handle_data(self, data: str) -> None:
        if self.pending and self.pending[-1].kind == "text":
            # The parser flushes text at every fed chunk; keep one token per run.
            previous = self.pending.pop()
            self.pending.append(previous.model_copy(update={"raw": previous.raw + _clean(data)}))
            return
        self.pending.append(HTMLToken(kind="text", raw=_clean(data), offset=self._offset()))

    def handle_comment(self, data: str) -> None:
        self.pending.append(HTMLToken(kind="comment", raw=_clean(data), offset=self._offset()))

    def drain(self, final: bool = False) -> list[HTMLToken]:
        keep: list[HTMLToken] = []
        if not final and self.pending and self.pending[-1].kind == "text":
            keep = [self.pending.pop()]
        tokens, self.pending = self.pending, keep
        return tokens


def _lines(text: str) -> Iterator[str]:
    pieces = text.split("\n")
    for index, piece in enumerate(pieces):
        line = piece + "\n" if index < len(pieces) - 1 else piece
        if line:
            yield line


def tokenize(html: bytes) -> Iterator[HTMLToken]:
    """Yield tokens lazily, feeding the parser one line at a time."""
    parser = _TokenCollector()
    byte_start = 0
    for line in _lines(html.decode("utf-8", _ERRORS)):
        parser.add_line(line, byte_start)
        byte_start += _byte_len(line)
        parser.feed(line)
        yield from parser.drain()
    parser.close()
    yield from parser.drain(final=True)
