from collections.abc import Iterable
from typing import Any, Protocol

from codex_prose.models import TextBlock


class RuleEvaluator(Protocol):
    def evaluate(self, block: TextBlock) -> Iterable[Any]: ...
