from __future__ import annotations

import re
from dataclasses import dataclass, field

from .markup import contains_entity
from .markup import decode_entities as _decode_entities

_SPACE_RE = re.compile(r"\s+")
NON_BREAKING_SPACE = "\u00a0"


@dataclass(frozen=True)
class NormalizationPolicy:
    """Which differences between a live slice and a match's content are tolerated."""

    decode_entities: bool = False
    nbsp_as_space: bool = False
    collapse_whitespace: bool = False
    # Extra equivalence classes: each key character is compared as its value.
    equivalents: dict[str, str] = field(default_factory=dict)
    # Accept an entity-bearing slice that is unchanged since the check, even if the
    # checker reported the decoded text as content (markdown / entity rewriting).
    trust_unchanged_entity_slices: bool = False

    @property
    def is_literal(self) -> bool:
        return not (self.decode_entities or self.nbsp_as_space or self.collapse_whitespace or self.equivalents)

    def normalize(self, text: str) -> str:
        if self.decode_entities:
            text = _decode_entities(text)
        if self.equivalents:
            text = "".join(self.equivalents.get(ch, ch) for ch in text)
        if self.nbsp_as_space:
            text = text.replace(NON_BREAKING_SPACE, " ")
        if self.collapse_whitespace:
            text = _SPACE_RE.sub(" ", text)
        return text

    def accepts(self, live_slice: str, content: str, checked_slice: str | None = None) -> bool:
        if live_slice == content:
            return True
        if not self.is_literal and self.normalize(live_slice) == self.normalize(content):
            return True
        if (
            self.trust_unchanged_entity_slices
            and checked_slice is not None
            and live_slice == checked_slice
            and contains_entity(live_slice)
        ):
            return True
        return False


TEXT_POLICY = NormalizationPolicy(trust_unchanged_entity_slices=True)
HTML_POLICY = NormalizationPolicy(decode_entities=True, nbsp_as_space=True, collapse_whitespace=True)
LITERAL_POLICY = NormalizationPolicy()
