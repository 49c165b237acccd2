"""Error taxonomy.

Every error aborts the current document only; batch callers are expected to
record it and move on to the next document.
"""

from __future__ import annotations


class CodexProseError(Exception):
    """Base class for errors raised while processing a document."""


class ConfigPatternError(CodexProseError):
    """An ignore pattern failed to compile or to substitute."""

    def __init__(self, pattern: str, source: str | None, reason: str) -> None:
        self.pattern = pattern
        self.source = source
        self.reason = reason
        where = f" (from {source})" if source else ""
        super().__init__(f"Invalid ignore pattern {pattern!r}{where}: {reason}")


class RenderTransportError(CodexProseError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: renderer request failed: {reason}")


class RenderRejectedError(CodexProseError):
    def __init__(self, path: str, status_code: int) -> None:
        self.path = path
        self.status_code = status_code
        super().__init__(f"{path}: renderer responded with status {status_code}")


class ProbeTimeoutError(CodexProseError):
    def __init__(self, address: str, timeout: float) -> None:
        self.address = address
        self.timeout = timeout
        super().__init__(f"Failed to start renderer: {address} not reachable after {timeout:.3f}s")


class RendererAddressError(CodexProseError):
    """The configured renderer URL has no usable host and port."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid renderer URL {url!r}: {reason}")


class ArtifactReadError(CodexProseError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read pre-built HTML {path}: {reason}")


class RendererUnavailableError(CodexProseError):
    def __init__(self, path: str, ext: str) -> None:
        self.path = path
        self.ext = ext
        super().__init__(f"{path}: no renderer configured for '{ext}' files")


class UnknownLanguageError(CodexProseError, LookupError):
    def __init__(self, language: str) -> None:
        self.language = language
        super().__init__(f"No language profile for '{language}'")


class ProfileBuildError(CodexProseError):
    """A language profile's parser or queries could not be constructed."""

    def __init__(self, language: str, query: str, reason: str) -> None:
        self.language = language
        self.query = query
        self.reason = reason
        super().__init__(f"Cannot build '{query}' query for {language}: {reason}")
