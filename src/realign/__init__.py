"""realign - relocate checker matches onto edited documents and replace them safely."""

from .adapters import DocumentAdapter
from .composite import CompositeDocument, MultiRegionAdapter, Region, compose, remap
from .docx_surface import DocxParagraphSurface, build_docx_adapter, iter_paragraph_locations
from .errors import (
    ContentModifiedError,
    CrossRegionMatchError,
    ExtractionFailure,
    OverlappingRangesError,
    RealignError,
    UnknownCheckError,
)
from .lookup import align, complete_flag_length, lookup_matches
from .models import (
    AlignedMatch,
    Check,
    CheckedPart,
    CheckResult,
    ContentExtractionResult,
    InputFormat,
    Match,
    MatchWithReplacement,
    Span,
)
from .replace import ReplacementResult, apply_replacements, commit_replacements
from .session import CheckSession, CheckSessionStore

__all__ = [
    "AlignedMatch",
    "Check",
    "CheckedPart",
    "CheckResult",
    "CheckSession",
    "CheckSessionStore",
    "CompositeDocument",
    "ContentExtractionResult",
    "ContentModifiedError",
    "CrossRegionMatchError",
    "DocumentAdapter",
    "DocxParagraphSurface",
    "ExtractionFailure",
    "InputFormat",
    "Match",
    "MatchWithReplacement",
    "MultiRegionAdapter",
    "OverlappingRangesError",
    "RealignError",
    "Region",
    "ReplacementResult",
    "UnknownCheckError",
    "align",
    "apply_replacements",
    "build_docx_adapter",
    "commit_replacements",
    "complete_flag_length",
    "compose",
    "iter_paragraph_locations",
    "lookup_matches",
    "remap",
]
