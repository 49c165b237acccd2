"""Tests for the markup renderer gateway."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from codex_prose.errors import (
    ArtifactReadError,
    ProbeTimeoutError,
    RendererAddressError,
    RendererUnavailableError,
    RenderRejectedError,
    RenderTransportError,
)
from codex_prose.models import Document
from codex_prose.render.gateway import RendererGateway
from codex_prose.settings import Settings

RENDERER_URL = "http://renderer.test/render"


def _mock_client(handler: object) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))  # type: ignore[arg-type]


def _rst(content: str = "Title\n=====\n") -> Document:
    return Document.from_text(content, "guide.rst")


class TestServiceMode:
    @pytest.mark.asyncio
    async def test_posts_plain_text_and_returns_html(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="<h1>Title</h1>")

        async with _mock_client(handler) as client:
            gateway = RendererGateway(Settings(renderer_url=RENDERER_URL), client=client, probe=False)
            html = await gateway.render(_rst(), "Title\n=====\n")

        assert html == b"<h1>Title</h1>"
        (request,) = seen
        assert request.method == "POST"
        assert str(request.url) == RENDERER_URL
        assert request.headers["Content-Type"] == "text/plain"
        assert request.headers["Accept"] == "text/plain"
        assert request.content == b"Title\n=====\n"

    @pytest.mark.asyncio
    async def test_non_200_is_rejected(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500, text="boom")

        async with _mock_client(handler) as client:
            gateway = RendererGateway(Settings(renderer_url=RENDERER_URL), client=client, probe=False)
            with pytest.raises(RenderRejectedError) as excinfo:
                await gateway.render(_rst(), "text")

        assert excinfo.value.status_code == 500
        assert excinfo.value.path == "guide.rst"
        assert calls == 1

    @pytest.mark.asyncio
    async def test_transport_failure_names_document(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _mock_client(handler) as client:
            gateway = RendererGateway(Settings(renderer_url=RENDERER_URL), client=client, probe=False)
            with pytest.raises(RenderTransportError, match="guide.rst") as excinfo:
                await gateway.render(_rst(), "text")

        assert "connection refused" in excinfo.value.reason

    @pytest.mark.asyncio
    async def test_service_mode_wins_over_local_markdown(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<p>remote</p>")

        async with _mock_client(handler) as client:
            gateway = RendererGateway(Settings(renderer_url=RENDERER_URL), client=client, probe=False)
            html = await gateway.render(Document.from_text("# x", "a.md"), "# x")

        assert html == b"<p>remote</p>"

    @pytest.mark.asyncio
    async def test_unreachable_renderer_fails_the_run(self, unused_port: int) -> None:
        settings = Settings(renderer_url=f"http://127.0.0.1:{unused_port}/render", probe_timeout=0.05)
        async with RendererGateway(settings) as gateway:
            with pytest.raises(ProbeTimeoutError) as first:
                await gateway.render(_rst(), "text")
            with pytest.raises(ProbeTimeoutError) as second:
                await gateway.start()
        assert second.value is first.value

    @pytest.mark.asyncio
    async def test_unusable_renderer_url_is_a_lint_error(self) -> None:
        async with RendererGateway(Settings(renderer_url="renderer.local/render")) as gateway:
            with pytest.raises(RendererAddressError) as first:
                await gateway.render(_rst(), "text")
            with pytest.raises(RendererAddressError) as second:
                await gateway.render(_rst(), "text")
        assert second.value is first.value
        assert first.value.url == "renderer.local/render"
        assert "host:port" in first.value.reason


class TestPrebuiltMode:
    @pytest.mark.asyncio
    async def test_artifact_is_read_once_and_shared(self, tmp_path: Path) -> None:
        built = tmp_path / "site.html"
        built.write_text("<p>Shared</p>", encoding="utf-8")
        gateway = RendererGateway(Settings(built=built, renderer_url=RENDERER_URL), probe=False)

        first = await gateway.render(_rst(), "ignored")
        built.unlink()
        second = await gateway.render(Document.from_text("# x", "other.md"), "ignored")

        assert first == second == b"<p>Shared</p>"

    @pytest.mark.asyncio
    async def test_missing_artifact(self, tmp_path: Path) -> None:
        gateway = RendererGateway(Settings(built=tmp_path / "missing.html"))
        with pytest.raises(ArtifactReadError) as excinfo:
            await gateway.render(_rst(), "text")
        assert excinfo.value.path.endswith("missing.html")


class TestLocalModes:
    @pytest.mark.asyncio
    async def test_markdown_is_rendered_in_process(self) -> None:
        gateway = RendererGateway(Settings())
        html = await gateway.render(Document.from_text("# Hi", "a.md"), "# Hi\n\nSome *text*.\n")
        assert html == b"<h1>Hi</h1>\n<p>Some <em>text</em>.</p>\n"

    @pytest.mark.asyncio
    async def test_html_passes_through(self) -> None:
        gateway = RendererGateway(Settings(renderer_url=RENDERER_URL), probe=False)
        html = await gateway.render(Document.from_text("<p>x</p>", "page.html"), "<p>x</p>")
        assert html == b"<p>x</p>"

    @pytest.mark.asyncio
    async def test_no_renderer_for_rst(self) -> None:
        gateway = RendererGateway(Settings())
        with pytest.raises(RendererUnavailableError, match=r"\.rst"):
            await gateway.render(_rst(), "text")

    def test_mode_resolution(self, tmp_path: Path) -> None:
        assert RendererGateway(Settings()).mode_for(Document.from_text("", "a.md")) == "local"
        assert RendererGateway(Settings()).mode_for(Document.from_text("", "a.htm")) == "passthrough"
        assert RendererGateway(Settings(renderer_url=RENDERER_URL)).mode_for(_rst()) == "service"
        assert RendererGateway(Settings(built=tmp_path / "x.html")).mode_for(_rst()) == "built"
