"""Markup -> HTML rendering.

Modes, in order of precedence: a pre-built HTML artifact shared by every
document, HTML passthrough, an external renderer over HTTP, and in-process
Markdown rendering.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType

import httpx
from markdown_it import MarkdownIt

from codex_prose.errors import (
    ArtifactReadError,
    CodexProseError,
    ProbeTimeoutError,
    RendererAddressError,
    RendererUnavailableError,
    RenderRejectedError,
    RenderTransportError,
)
from codex_prose.models import Document
from codex_prose.render.probe import wait_until_reachable
from codex_prose.settings import Settings

logger = logging.getLogger(__name__)

_HEADERS = {"Content-Type": "text/plain", "Accept": "text/plain"}


class RendererGateway:
    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        probe: bool = True,
    ) -> None:
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._probe = probe
        self._started = False
        self._probe_error: CodexProseError | None = None
        self._built_html: bytes | None = None
        self._markdown = MarkdownIt("commonmark").enable("table")

    async def __aenter__(self) -> RendererGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def mode_for(self, document: Document) -> str:
        if self._settings.built is not None:
            return "built"
        if document.normed_ext == ".html":
            return "passthrough"
        if self._settings.renderer_url:
            return "service"
        if document.normed_ext == ".md":
            return "local"
        raise RendererUnavailableError(document.path, document.normed_ext)

    async def start(self) -> None:
        """Wait for the renderer service once; later calls return immediately."""
        if self._probe_error is not None:
            raise self._probe_error
        if self._started or not self._settings.renderer_url:
            return
        if self._probe:
            try:
                await wait_until_reachable(self._settings.renderer_url, self._settings.probe_timeout)
            except ValueError as exc:
                self._probe_error = RendererAddressError(self._settings.renderer_url, str(exc))
                raise self._probe_error from exc
            except ProbeTimeoutError as exc:
                # An unreachable renderer fails the rest of the run without re-probing.
                self._probe_error = exc
                raise
        self._started = True

    async def render(self, document: Document, text: str) -> bytes:
        mode = self.mode_for(document)
        logger.debug("Rendering %s (%s)", document.path, mode)
        if mode == "built":
            return self._read_built()
        if mode == "passthrough":
            return text.encode("utf-8")
        if mode == "service":
            return await self._post(document, text)
        return self._markdown.render(text).encode("utf-8")

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _read_built(self) -> bytes:
        if self._built_html is None:
            built = Path(str(self._settings.built))
            try:
                self._built_html = built.read_bytes()
            except OSError as exc:
                raise ArtifactReadError(str(built), exc.strerror or str(exc)) from exc
            logger.info("Loaded pre-built HTML from %s (%d bytes)", built, len(self._built_html))
        return self._built_html

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.request_timeout)
        return self._client

    async def _post(self, document: Document, text: str) -> bytes:
        await self.start()
        url = str(self._settings.renderer_url)
        try:
            response = await self._get_client().post(url, content=text.encode("utf-8"), headers=_HEADERS)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RenderTransportError(document.path, str(exc) or type(exc).__name__) from exc
        if response.status_code != 200:
            raise RenderRejectedError(document.path, response.status_code)
        return response.content
