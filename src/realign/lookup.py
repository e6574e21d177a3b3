"""Diff-based relocation of matches from a checked snapshot onto the current text.

The checked snapshot and the live text are diffed token by token with a
minimal edit script (diff-match-patch), and substituted hunks are refined
character by character. The equal runs of that diff define a monotonic offset
mapping; every match is moved through it and then verified against its
recorded content.
"""

from __future__ import annotations

import logging
import re
from bisect import bisect_left, bisect_right
from collections.abc import Sequence
from dataclasses import dataclass

from diff_match_patch import diff_match_patch

from .errors import ContentModifiedError
from .markup import ExtractedText, extract_text
from .models import AlignedMatch, InputFormat, M, Span
from .policy import HTML_POLICY, TEXT_POLICY, NormalizationPolicy

_logger = logging.getLogger(__name__)

# Whitespace runs, words (with inner apostrophes/hyphens), single punctuation characters.
TOKEN_RE = re.compile(r"\s+|\w+(?:['’‘\-]\w+)*|[^\w\s]", flags=re.UNICODE)

# Character refinement of a substituted hunk is skipped for huge hunks.
_REFINE_MAX_CHARS = 4000

# Tokens are diffed as single characters starting above ASCII.
_FIRST_TOKEN_CODE = 0x100

_DMP = diff_match_patch()
# No deadline: a timed-out diff is not minimal and repeated tokens could pair up differently.
_DMP.Diff_Timeout = 0


def tokenize(text: str) -> list[str]:
    return TOKEN_RE.findall(text)


@dataclass(frozen=True)
class EqualRun:
    old_start: int
    new_start: int
    length: int

    @property
    def old_end(self) -> int:
        return self.old_start + self.length

    @property
    def new_end(self) -> int:
        return self.new_start + self.length


def _offsets(tokens: Sequence[str]) -> list[int]:
    out = [0]
    for tok in tokens:
        out.append(out[-1] + len(tok))
    return out


def _encode_tokens(old_tokens: Sequence[str], new_tokens: Sequence[str]) -> tuple[str, str]:
    codes: dict[str, str] = {}

    def encode(tokens: Sequence[str]) -> str:
        chars = []
        for token in tokens:
            if token not in codes:
                codes[token] = chr(_FIRST_TOKEN_CODE + len(codes))
            chars.append(codes[token])
        return "".join(chars)

    return encode(old_tokens), encode(new_tokens)


def _refine(old_text: str, new_text: str, old_base: int, new_base: int) -> list[EqualRun]:
    if not old_text or not new_text:
        return []
    if len(old_text) > _REFINE_MAX_CHARS or len(new_text) > _REFINE_MAX_CHARS:
        return []
    runs: list[EqualRun] = []
    i = j = 0
    for op, data in _DMP.diff_main(old_text, new_text, False):
        if op == diff_match_patch.DIFF_EQUAL:
            runs.append(EqualRun(old_base + i, new_base + j, len(data)))
            i += len(data)
            j += len(data)
        elif op == diff_match_patch.DIFF_DELETE:
            i += len(data)
        else:
            j += len(data)
    return runs


def diff_equal_runs(old_text: str, new_text: str) -> list[EqualRun]:
    """Return the character ranges both texts share, in increasing order."""
    if old_text == new_text:
        return [EqualRun(0, 0, len(old_text))] if old_text else []

    old_tokens = tokenize(old_text)
    new_tokens = tokenize(new_text)
    old_offsets = _offsets(old_tokens)
    new_offsets = _offsets(new_tokens)
    old_codes, new_codes = _encode_tokens(old_tokens, new_tokens)

    def refine_gap(i1: int, i2: int, j1: int, j2: int) -> list[EqualRun]:
        old_a, old_b = old_offsets[i1], old_offsets[i2]
        new_a, new_b = new_offsets[j1], new_offsets[j2]
        return _refine(old_text[old_a:old_b], new_text[new_a:new_b], old_a, new_a)

    runs: list[EqualRun] = []
    i = j = 0
    # Token positions where the current unmatched stretch began.
    gap_i = gap_j = 0
    for op, data in _DMP.diff_main(old_codes, new_codes, False):
        n = len(data)
        if op == diff_match_patch.DIFF_EQUAL:
            runs.extend(refine_gap(gap_i, i, gap_j, j))
            runs.append(EqualRun(old_offsets[i], new_offsets[j], old_offsets[i + n] - old_offsets[i]))
            i += n
            j += n
            gap_i, gap_j = i, j
        elif op == diff_match_patch.DIFF_DELETE:
            i += n
        else:
            j += n
    runs.extend(refine_gap(gap_i, i, gap_j, j))

    return _merge_runs(runs)


def _merge_runs(runs: list[EqualRun]) -> list[EqualRun]:
    merged: list[EqualRun] = []
    for run in runs:
        if merged and merged[-1].old_end == run.old_start and merged[-1].new_end == run.new_start:
            last = merged[-1]
            merged[-1] = EqualRun(last.old_start, last.new_start, last.length + run.length)
        else:
            merged.append(run)
    return merged


class OffsetMapping:
    """Monotonic old-offset -> new-offset function built from equal runs."""

    def __init__(self, runs: list[EqualRun], new_length: int) -> None:
        self.runs = runs
        self.new_length = new_length
        self._old_starts = [r.old_start for r in runs]

    @classmethod
    def between(cls, old_text: str, new_text: str) -> OffsetMapping:
        return cls(diff_equal_runs(old_text, new_text), len(new_text))

    def _run_containing(self, offset: int) -> EqualRun | None:
        idx = bisect_right(self._old_starts, offset) - 1
        if idx >= 0 and offset < self.runs[idx].old_end:
            return self.runs[idx]
        return None

    def map_start(self, offset: int) -> int:
        run = self._run_containing(offset)
        if run is not None:
            return run.new_start + offset - run.old_start
        # Inside a deleted or substituted stretch: end of the preceding equal run.
        idx = bisect_right(self._old_starts, offset) - 1
        return self.runs[idx].new_end if idx >= 0 else 0

    def map_end(self, offset: int) -> int:
        if offset <= 0:
            return 0
        run = self._run_containing(offset - 1)
        if run is not None:
            return run.new_start + offset - run.old_start
        # Last character was deleted or substituted: start of the following equal run.
        idx = bisect_left(self._old_starts, offset)
        return self.runs[idx].new_start if idx < len(self.runs) else self.new_length

    def map_span(self, span: Span) -> Span:
        start = self.map_start(span.start)
        if span.is_empty:
            return Span(start, start)
        return Span(start, max(start, self.map_end(span.end)))


class TextFormat:
    """Literal text: snapshot offsets are text offsets."""

    input_format = InputFormat.TEXT
    default_policy = TEXT_POLICY

    def prepare(self, checked_text: str) -> PreparedSnapshot:
        return PreparedSnapshot(raw=checked_text, text=checked_text)


class HtmlFormat(TextFormat):
    """Markup snapshot compared against the visible text of the live document."""

    input_format = InputFormat.HTML
    default_policy = HTML_POLICY

    def prepare(self, checked_text: str) -> PreparedSnapshot:
        extracted = extract_text(checked_text)
        return PreparedSnapshot(raw=checked_text, text=extracted.text, extracted=extracted)


@dataclass(frozen=True)
class PreparedSnapshot:
    raw: str
    text: str
    extracted: ExtractedText | None = None

    def to_diff_span(self, span: Span) -> Span:
        if self.extracted is None:
            return span
        start = self.extracted.to_text_offset(span.start)
        end = self.extracted.to_text_offset(span.end)
        return Span(start, max(start, end))


_FORMATS: dict[InputFormat, TextFormat] = {
    InputFormat.TEXT: TextFormat(),
    InputFormat.HTML: HtmlFormat(),
}


def format_for(input_format: InputFormat | str) -> TextFormat:
    if not isinstance(input_format, InputFormat):
        input_format = InputFormat(str(input_format).strip().upper())
    return _FORMATS[input_format]


def lookup_matches(
    checked_text: str,
    current_text: str,
    matches: Sequence[M],
    input_format: InputFormat | str = InputFormat.TEXT,
    *,
    policy: NormalizationPolicy | None = None,
) -> list[AlignedMatch[M]]:
    """Align ``matches`` (ranges in ``checked_text``) onto ``current_text``.

    Returns only the matches whose realigned slice is still equivalent to their
    content, in input order. Never raises for infeasible matches.
    """
    if not matches:
        return []

    fmt = format_for(input_format)
    active_policy = policy if policy is not None else fmt.default_policy
    snapshot = fmt.prepare(checked_text)
    mapping = OffsetMapping.between(snapshot.text, current_text)

    aligned: list[AlignedMatch[M]] = []
    for match in matches:
        if match.range.end > len(checked_text):
            _logger.debug(f"Match {match.range.to_list()} lies outside the checked text")
            continue
        new_span = mapping.map_span(snapshot.to_diff_span(match.range))
        live_slice = current_text[new_span.start : new_span.end]
        checked_slice = checked_text[match.range.start : match.range.end]
        if not active_policy.accepts(live_slice, match.content, checked_slice):
            _logger.debug(
                f"Match {match.range.to_list()} not aligned: expected {match.content!r}, found {live_slice!r}"
            )
            continue
        aligned.append(AlignedMatch(original_match=match, range=new_span))
    return aligned


def align(
    checked_text: str,
    current_text: str,
    matches: Sequence[M],
    input_format: InputFormat | str = InputFormat.TEXT,
    *,
    policy: NormalizationPolicy | None = None,
    require_all: bool = False,
    check_id: str | None = None,
) -> list[AlignedMatch[M]]:
    """Like :func:`lookup_matches`, but refuse requests that cannot be honoured.

    Raises ContentModifiedError if no match aligns, or if any match fails while
    ``require_all`` is set.
    """
    aligned = lookup_matches(checked_text, current_text, matches, input_format, policy=policy)
    if not matches:
        return aligned
    if not aligned or (require_all and len(aligned) < len(matches)):
        found = {id(a.original_match) for a in aligned}
        raise ContentModifiedError(
            check_id=check_id,
            unaligned=tuple(m for m in matches if id(m) not in found),
        )
    return aligned


def complete_flag_length(aligned: Sequence[AlignedMatch]) -> int:
    """Distance from the first aligned start to the last aligned end."""
    if not aligned:
        return 0
    return max(a.range.end for a in aligned) - min(a.range.start for a in aligned)
