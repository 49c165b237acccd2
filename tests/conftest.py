"""Shared fixtures and helpers for tests."""

import socket
from collections.abc import Iterable
from pathlib import Path

import pytest

from codex_prose.core.profiles import LanguageProfile, LanguageRegistry, build_default_registry
from codex_prose.models import TextBlock

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


class CollectingEvaluator:
    """Rule evaluator that records every block and reports its stripped text."""

    def __init__(self) -> None:
        self.blocks: list[TextBlock] = []

    def evaluate(self, block: TextBlock) -> Iterable[str]:
        self.blocks.append(block)
        return [block.text.strip()]


@pytest.fixture
def unused_port() -> int:
    """Return a loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


@pytest.fixture(scope="session")
def registry() -> LanguageRegistry:
    """Return a registry with every shipped language profile."""
    return build_default_registry()


@pytest.fixture
def python_profile(registry: LanguageRegistry) -> LanguageProfile:
    return registry.lookup("python")


@pytest.fixture
def evaluator() -> CollectingEvaluator:
    return CollectingEvaluator()
