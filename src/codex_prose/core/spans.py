"""Prose-span extraction from source code.

Queries run in registration order, so a region can be captured by more than
one query; ``extract_spans`` resolves the overlaps before returning.
"""

from __future__ import annotations

from tree_sitter import Node, QueryCursor

from codex_prose.core.profiles import LanguageProfile
from codex_prose.models import OffsetAdjustment, Position, ProseSpan, QuerySpec


def _line_starts(source: bytes) -> list[int]:
    starts = [0]
    starts.extend(index + 1 for index, byte in enumerate(source) if byte == 0x0A)
    return starts


def _to_byte(starts: list[int], point: Position, limit: int) -> int:
    row = min(max(point.row, 0), len(starts) - 1)
    return min(max(starts[row] + point.column, 0), limit)


def _adjust(start: Position, end: Position, offset: OffsetAdjustment) -> tuple[Position, Position]:
    return (
        Position(row=start.row + offset.start_row, column=start.column + offset.start_column),
        Position(row=end.row + offset.end_row, column=end.column + offset.end_column),
    )


def _span_from_nodes(
    source: bytes, starts: list[int], profile: LanguageProfile, spec: QuerySpec, nodes: list[Node]
) -> ProseSpan | None:
    ordered = sorted(nodes, key=lambda n: n.start_byte)
    start = Position(row=ordered[0].start_point[0], column=ordered[0].start_point[1])
    end = Position(row=ordered[-1].end_point[0], column=ordered[-1].end_point[1])
    if spec.offset is not None:
        start, end = _adjust(start, end, spec.offset)

    start_byte = _to_byte(starts, start, len(source))
    end_byte = _to_byte(starts, end, len(source))
    if end_byte <= start_byte:
        return None

    raw = source[start_byte:end_byte].decode("utf-8", errors="replace")
    text = profile.strip_delimiters(raw)
    if not text.strip():
        return None
    return ProseSpan(
        query=spec.name,
        text=text,
        raw=raw,
        start_byte=start_byte,
        end_byte=end_byte,
        start_point=start,
        end_point=end,
        adjusted=spec.offset is not None,
    )


def _more_specific(candidate: ProseSpan, other: ProseSpan) -> bool:
    candidate_width = candidate.end_byte - candidate.start_byte
    other_width = other.end_byte - other.start_byte
    if candidate.query == other.query:
        # Partial runs of a quantified capture lose to the full run.
        return candidate_width > other_width
    if candidate.adjusted != other.adjusted:
        return candidate.adjusted
    return candidate_width < other_width


def dedupe_spans(spans: list[ProseSpan]) -> list[ProseSpan]:
    """Keep the most specific span of every overlapping group, ordered by position."""
    kept: list[ProseSpan] = []
    for span in sorted(spans, key=lambda s: (s.start_byte, -s.end_byte)):
        overlapping = [k for k in kept if k.start_byte < span.end_byte and span.start_byte < k.end_byte]
        if all(_more_specific(span, other) for other in overlapping):
            kept = [k for k in kept if k not in overlapping]
            kept.append(span)
    return sorted(kept, key=lambda s: s.start_byte)


def extract_spans(source: bytes, profile: LanguageProfile) -> list[ProseSpan]:
    tree = profile.parser.parse(source)
    starts = _line_starts(source)
    spans: list[ProseSpan] = []
    for spec, query in profile.iter_queries():
        cursor = QueryCursor(query)
        for _, captures in cursor.matches(tree.root_node):
            for nodes in captures.values():
                if not nodes:
                    continue
                span = _span_from_nodes(source, starts, profile, spec, list(nodes))
                if span is not None:
                    spans.append(span)
    return dedupe_spans(spans)
