from __future__ import annotations

from typing import Any


class RealignError(Exception):
    """Base class for errors raised by realign."""


class ContentModifiedError(RealignError):
    """None of the requested matches can be located in the current text."""

    def __init__(
        self,
        message: str = "Selected flagged content is modified.",
        *,
        check_id: str | None = None,
        unaligned: tuple[Any, ...] = (),
    ) -> None:
        super().__init__(message)
        self.check_id = check_id
        self.unaligned = unaligned


class CrossRegionMatchError(RealignError):
    """A composite match is not contained in exactly one region."""

    def __init__(self, match: Any) -> None:
        super().__init__(f"Match {match.range.to_list()} is not contained in a single region")
        self.match = match


class ExtractionFailure(RealignError):
    """Content extraction of one region failed, so the composite has no content."""

    def __init__(self, region_id: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Extraction failed for region '{region_id}'{detail}")
        self.region_id = region_id


class UnknownCheckError(RealignError, LookupError):
    def __init__(self, check_id: str) -> None:
        super().__init__(f"No snapshot recorded for check '{check_id}'")
        self.check_id = check_id


class OverlappingRangesError(RealignError, ValueError):
    pass
