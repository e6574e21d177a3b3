from __future__ import annotations

import inspect
import logging
from collections.abc import Sequence

from .config import RealignConfig
from .lookup import align, complete_flag_length
from .models import (
    AlignedMatch,
    Check,
    CheckResult,
    ContentExtractionResult,
    InputFormat,
    M,
    MatchWithReplacement,
    Span,
)
from .replace import commit_replacements
from .session import CheckSessionStore
from .surfaces import EditorSurface

_logger = logging.getLogger(__name__)


class DocumentAdapter:
    """Host-facing check/select/replace operations over one editor surface."""

    def __init__(
        self,
        surface: EditorSurface,
        *,
        config: RealignConfig | None = None,
        sessions: CheckSessionStore | None = None,
    ) -> None:
        self.surface = surface
        self.config = config or RealignConfig()
        self.sessions = sessions if sessions is not None else CheckSessionStore()
        self._pending_snapshot: str | None = None

    @property
    def input_format(self) -> InputFormat:
        return getattr(self.surface, "input_format", self.config.input_format)

    def extract_content_for_check(self) -> ContentExtractionResult:
        content = self.surface.extract_current_text()
        if inspect.isawaitable(content):
            if inspect.iscoroutine(content):
                content.close()
            raise TypeError("Surface extracts asynchronously; use extract_content_for_check_async()")
        self._pending_snapshot = content
        return ContentExtractionResult(content=content)

    async def extract_content_for_check_async(self) -> ContentExtractionResult:
        content = self.surface.extract_current_text()
        if inspect.isawaitable(content):
            content = await content
        self._pending_snapshot = content
        return ContentExtractionResult(content=content)

    def register_check_call(self, check: Check) -> None:
        _logger.debug(f"Check {check.check_id} started")

    def register_check_result(self, check_result: CheckResult) -> None:
        part = check_result.checked_part
        if self._pending_snapshot is None:
            raise RuntimeError(f"Check result {part.check_id} arrived before any content was extracted")
        self.sessions.record(part.check_id, self._pending_snapshot, part)

    def align_matches(self, check_id: str, matches: Sequence[M]) -> list[AlignedMatch[M]]:
        """Realign ``matches`` from the snapshot of ``check_id`` onto the live text."""
        input_format = self.input_format
        return align(
            self.sessions.lookup(check_id),
            self.surface.get_current_text(),
            matches,
            input_format,
            policy=self.config.policy_for(input_format),
            require_all=self.config.alignment.require_all_matches,
            check_id=check_id,
        )

    def select_aligned(self, aligned: Sequence[AlignedMatch]) -> Span:
        start = min(a.range.start for a in aligned)
        span = Span(start, start + complete_flag_length(aligned))
        selectable = self.surface.get_selectable()
        selectable.focus()
        selectable.set_selection(span.start, span.end)
        selectable.scroll_into_view()
        return span

    def select_ranges(self, check_id: str, matches: Sequence[M]) -> list[AlignedMatch[M]]:
        if not matches:
            return []
        aligned = self.align_matches(check_id, matches)
        self.select_aligned(aligned)
        return aligned

    def commit_aligned(self, aligned: Sequence[AlignedMatch[MatchWithReplacement]]) -> Span:
        selection = commit_replacements(self.surface, aligned)
        selectable = self.surface.get_selectable()
        selectable.focus()
        selectable.set_selection(selection.start, selection.end)
        return selection

    def replace_ranges(self, check_id: str, matches_with_replacement: Sequence[MatchWithReplacement]) -> Span:
        """Replace the flagged ranges and select the replacement text."""
        if not matches_with_replacement:
            raise ValueError("replace_ranges needs at least one match")
        aligned = self.align_matches(check_id, matches_with_replacement)
        selection = self.commit_aligned(aligned)
        _logger.info(
            f"Replaced {len(aligned)}/{len(matches_with_replacement)} range(s) for check {check_id}"
        )
        return selection
