"""Several editable regions checked as one document.

Each region's content is wrapped in a synthetic element carrying the region id
and the wrapped parts are concatenated. Matches reported against the composite
are handed back to the region that contains them, in that region's coordinates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .adapters import DocumentAdapter
from .config import RealignConfig
from .errors import ContentModifiedError, CrossRegionMatchError, ExtractionFailure
from .models import (
    AlignedMatch,
    Check,
    CheckResult,
    ContentExtractionResult,
    M,
    MatchWithReplacement,
    Span,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    id: str
    adapter: Any
    wrapper_start_len: int
    global_start: int
    global_end: int

    @property
    def span(self) -> Span:
        return Span(self.global_start, self.global_end)


@dataclass(frozen=True)
class CompositeDocument:
    global_text: str
    regions: dict[str, Region]

    @property
    def content(self) -> str:
        return self.global_text


def _closing_tag(wrapper: str) -> str:
    return wrapper.strip().split(" ")[0]


def compose(
    parts: Sequence[tuple[str, Any, str]],
    *,
    wrapper: str = "div",
    wrappers: Mapping[str, str] | None = None,
) -> CompositeDocument:
    """Concatenate ``(region_id, adapter, text)`` parts into one wrapped document.

    ``wrappers`` overrides the wrapper element per region id. Region content is
    inserted as is, without escaping.
    """
    chunks: list[str] = []
    regions: dict[str, Region] = {}
    offset = 0
    for region_id, adapter, text in parts:
        if region_id in regions:
            raise ValueError(f"Duplicate region id: {region_id!r}")
        element = (wrappers or {}).get(region_id, wrapper)
        start_tag = f'<{element} id="{region_id}">'
        end_tag = f"</{_closing_tag(element)}>"
        global_start = offset + len(start_tag)
        global_end = global_start + len(text)
        regions[region_id] = Region(
            id=region_id,
            adapter=adapter,
            wrapper_start_len=len(start_tag),
            global_start=global_start,
            global_end=global_end,
        )
        chunks.extend((start_tag, text, end_tag))
        offset = global_end + len(end_tag)
    return CompositeDocument(global_text="".join(chunks), regions=regions)


def _region_for(match: Any, regions: Mapping[str, Region]) -> Region:
    for region in regions.values():
        if region.span.contains(match.range):
            return region
    raise CrossRegionMatchError(match)


def remap(global_matches: Sequence[M], regions: Mapping[str, Region]) -> dict[str, list[M]]:
    """Translate composite matches into per-region matches.

    Matches that do not fall inside exactly one region's content are logged and dropped.
    """
    out: dict[str, list[M]] = {}
    for match in global_matches:
        try:
            region = _region_for(match, regions)
        except CrossRegionMatchError as exc:
            _logger.warning(str(exc))
            continue
        local = match.relocated(match.range.shift(-region.global_start))
        out.setdefault(region.id, []).append(local)
    return out


class MultiRegionAdapter:
    """Host-facing adapter over several DocumentAdapters checked together."""

    def __init__(self, *, config: RealignConfig | None = None) -> None:
        self.config = config or RealignConfig()
        self._adapters: dict[str, DocumentAdapter] = {}
        self._wrappers: dict[str, str] = {}
        self._document: CompositeDocument | None = None

    @property
    def region_ids(self) -> list[str]:
        return list(self._adapters)

    @property
    def document(self) -> CompositeDocument:
        if self._document is None:
            raise RuntimeError("No composite content has been extracted yet")
        return self._document

    def add_region(
        self,
        adapter: DocumentAdapter,
        wrapper: str | None = None,
        region_id: str | None = None,
    ) -> str:
        if region_id is None:
            region_id = f"{self.config.composite.id_prefix}{len(self._adapters)}"
        if region_id in self._adapters:
            raise ValueError(f"Duplicate region id: {region_id!r}")
        self._adapters[region_id] = adapter
        self._wrappers[region_id] = wrapper or self.config.composite.wrapper
        return region_id

    def adapter(self, region_id: str) -> DocumentAdapter:
        return self._adapters[region_id]

    async def extract_content_for_check(self) -> ContentExtractionResult:
        ids = list(self._adapters)
        results = await asyncio.gather(
            *(self._adapters[i].extract_content_for_check_async() for i in ids),
            return_exceptions=True,
        )
        for region_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                _logger.error(f"Extraction failed for region {region_id}: {result}")
                raise ExtractionFailure(region_id, result) from result

        self._document = compose(
            [(i, self._adapters[i], r.content) for i, r in zip(ids, results)],
            wrapper=self.config.composite.wrapper,
            wrappers=self._wrappers,
        )
        _logger.debug(f"Composed {len(ids)} region(s), {len(self._document.global_text)} chars")
        return ContentExtractionResult(content=self._document.global_text)

    def register_check_call(self, check: Check) -> None:
        for adapter in self._adapters.values():
            adapter.register_check_call(check)

    def register_check_result(self, check_result: CheckResult) -> None:
        for adapter in self._adapters.values():
            adapter.register_check_result(check_result)

    def remap_matches(self, matches: Sequence[M]) -> dict[str, list[M]]:
        return remap(matches, self.document.regions)

    def _remap_for_request(self, check_id: str, matches: Sequence[M]) -> dict[str, list[M]]:
        per_region = self.remap_matches(matches)
        if not per_region:
            raise ContentModifiedError(check_id=check_id, unaligned=tuple(matches))
        return per_region

    def select_ranges(self, check_id: str, matches: Sequence[M]) -> dict[str, list[AlignedMatch[M]]]:
        if not matches:
            return {}
        return {
            region_id: self._adapters[region_id].select_ranges(check_id, local)
            for region_id, local in self._remap_for_request(check_id, matches).items()
        }

    def replace_ranges(
        self,
        check_id: str,
        matches_with_replacement: Sequence[MatchWithReplacement],
    ) -> dict[str, Span]:
        """Replace across regions; nothing is committed unless every region aligns."""
        if not matches_with_replacement:
            raise ValueError("replace_ranges needs at least one match")
        per_region = self._remap_for_request(check_id, matches_with_replacement)
        aligned = {
            region_id: self._adapters[region_id].align_matches(check_id, local)
            for region_id, local in per_region.items()
        }
        selections = {
            region_id: self._adapters[region_id].commit_aligned(items)
            for region_id, items in aligned.items()
        }
        _logger.info(f"Replaced ranges in {len(selections)} region(s) for check {check_id}")
        return selections
