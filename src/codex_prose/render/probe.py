from __future__ import annotations

import asyncio
import contextlib
import logging
from urllib.parse import urlsplit

from codex_prose.errors import ProbeTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 0.5
ATTEMPT_TIMEOUT = 0.002


def split_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (or a URL) into its parts."""
    if "://" in address:
        parts = urlsplit(address)
        if parts.hostname is None:
            raise ValueError(f"No host in address: {address!r}")
        default_port = 443 if parts.scheme == "https" else 80
        return parts.hostname, parts.port or default_port
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Address must look like host:port, got {address!r}")
    return host.strip("[]") or "127.0.0.1", int(port)


async def _poll(host: str, port: int, attempt_timeout: float, reachable: asyncio.Event) -> None:
    while True:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), attempt_timeout)
        except (OSError, TimeoutError):
            await asyncio.sleep(0)
            continue
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        reachable.set()
        return


async def wait_until_reachable(
    address: str,
    timeout: float = DEFAULT_TIMEOUT,
    attempt_timeout: float = ATTEMPT_TIMEOUT,
) -> None:
    """Block until a TCP connection to ``address`` succeeds or ``timeout`` elapses.

    Raises ``ProbeTimeoutError`` on expiry. The polling task is cancelled
    either way.
    """
    host, port = split_address(address)
    reachable = asyncio.Event()
    poller = asyncio.create_task(_poll(host, port, attempt_timeout, reachable))
    try:
        await asyncio.wait_for(reachable.wait(), timeout)
    except TimeoutError:
        raise ProbeTimeoutError(address, timeout) from None
    finally:
        poller.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await poller
    logger.info("Renderer reachable at %s:%d", host, port)
