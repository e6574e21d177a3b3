from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Sequence, TypeVar


class InputFormat(str, Enum):
    TEXT = "TEXT"
    HTML = "HTML"


@dataclass(frozen=True)
class Span:
    """Half-open range [start, end) over a text buffer."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid span [{self.start}, {self.end})")

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def overlaps(self, other: Span) -> bool:
        # Adjacent spans do not overlap; an empty span overlaps only a span strictly around it.
        return self.start < other.end and other.start < self.end

    def contains(self, other: Span) -> bool:
        return self.start <= other.start and other.end <= self.end

    def shift(self, delta: int) -> Span:
        return Span(self.start + delta, self.end + delta)

    def to_list(self) -> list[int]:
        return [self.start, self.end]

    @classmethod
    def from_value(cls, value: Span | Sequence[int]) -> Span:
        if isinstance(value, Span):
            return value
        start, end = value
        return cls(int(start), int(end))


@dataclass(frozen=True)
class Match:
    """A flagged range plus the literal text the checker saw there."""

    content: str
    range: Span

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "range": self.range.to_list()}

    def relocated(self, range: Span) -> Match:
        return Match(content=self.content, range=range)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Match:
        return cls(content=str(data.get("content", "")), range=Span.from_value(data["range"]))


@dataclass(frozen=True)
class MatchWithReplacement(Match):
    replacement: str

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["replacement"] = self.replacement
        return payload

    def relocated(self, range: Span) -> MatchWithReplacement:
        return MatchWithReplacement(content=self.content, range=range, replacement=self.replacement)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchWithReplacement:
        return cls(
            content=str(data.get("content", "")),
            range=Span.from_value(data["range"]),
            replacement=str(data.get("replacement", "")),
        )


def match_from_dict(data: dict[str, Any]) -> Match:
    if "replacement" in data:
        return MatchWithReplacement.from_dict(data)
    return Match.from_dict(data)


M = TypeVar("M", bound=Match)


@dataclass(frozen=True)
class AlignedMatch(Generic[M]):
    """A match together with its resolved range in the current buffer."""

    original_match: M
    range: Span

    @property
    def found_offset(self) -> int:
        return self.range.start

    @property
    def flag_length(self) -> int:
        return self.range.length

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_match": self.original_match.to_dict(),
            "range": self.range.to_list(),
        }


@dataclass(frozen=True)
class Check:
    check_id: str


@dataclass(frozen=True)
class CheckedPart:
    check_id: str
    range: Span


@dataclass(frozen=True)
class CheckResult:
    checked_part: CheckedPart

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckResult:
        part = data.get("checked_part") or data.get("checkedPart") or {}
        check_id = part.get("check_id", part.get("checkId"))
        if check_id is None:
            raise ValueError("Check result has no check id")
        return cls(CheckedPart(check_id=str(check_id), range=Span.from_value(part["range"])))


@dataclass(frozen=True)
class ContentExtractionResult:
    content: str
