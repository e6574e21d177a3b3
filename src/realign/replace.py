from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .errors import OverlappingRangesError
from .models import AlignedMatch, MatchWithReplacement, Span


class Committer(Protocol):
    def commit(self, span: Span, text: str) -> None: ...


@dataclass(frozen=True)
class ReplacementResult:
    text: str
    new_selection_start: int
    new_selection_end: int

    @property
    def selection(self) -> Span:
        return Span(self.new_selection_start, self.new_selection_end)


def commit_order(
    aligned: Sequence[AlignedMatch[MatchWithReplacement]],
) -> list[AlignedMatch[MatchWithReplacement]]:
    """Order replacements right-to-left so pending offsets stay valid.

    At equal offsets a non-empty span goes before insertions, and insertions keep
    the caller's relative order in the final text.
    """
    indexed = sorted(
        enumerate(aligned),
        key=lambda item: (item[1].range.start, item[1].range.end, item[0]),
        reverse=True,
    )
    ordered = [a for _, a in indexed]
    for right, left in zip(ordered, ordered[1:]):
        if left.range.overlaps(right.range):
            raise OverlappingRangesError(
                f"Replacement ranges {left.range.to_list()} and {right.range.to_list()} overlap"
            )
    return ordered


def selection_after(aligned: Sequence[AlignedMatch[MatchWithReplacement]]) -> Span:
    """Range covering every replacement text once all of them are applied."""
    if not aligned:
        return Span(0, 0)
    start = min(a.range.start for a in aligned)
    end = max(a.range.end for a in aligned)
    delta = sum(len(a.original_match.replacement) - a.range.length for a in aligned)
    return Span(start, end + delta)


def apply_replacements(
    current_text: str,
    aligned: Sequence[AlignedMatch[MatchWithReplacement]],
) -> ReplacementResult:
    parts: list[str] = []
    tail = len(current_text)
    for item in commit_order(aligned):
        if item.range.end > len(current_text):
            raise ValueError(f"Replacement range {item.range.to_list()} exceeds text length {len(current_text)}")
        parts.append(current_text[item.range.end : tail])
        parts.append(item.original_match.replacement)
        tail = item.range.start
    parts.append(current_text[:tail])
    selection = selection_after(aligned)
    return ReplacementResult(
        text="".join(reversed(parts)),
        new_selection_start=selection.start,
        new_selection_end=selection.end,
    )


def commit_replacements(
    target: Committer,
    aligned: Sequence[AlignedMatch[MatchWithReplacement]],
) -> Span:
    """Commit each replacement through ``target`` right-to-left; return the new selection."""
    for item in commit_order(aligned):
        target.commit(item.range, item.original_match.replacement)
    return selection_after(aligned)
