from __future__ import annotations

import html
import re
from bisect import bisect_right
from dataclasses import dataclass
from functools import cached_property

_SCRIPT_PATTERN = r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>"
_STYLE_PATTERN = r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>"
_TAG_PATTERN = r"<[^>]+>"
_ENTITY_PATTERN = r"&(?:#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);"

# Order matters: whole script/style blocks must win over their opening tag.
MARKUP_RE = re.compile(
    "|".join((_SCRIPT_PATTERN, _STYLE_PATTERN, _TAG_PATTERN, _ENTITY_PATTERN)),
    flags=re.IGNORECASE,
)
ENTITY_RE = re.compile(_ENTITY_PATTERN)
_TAG_PARTS_RE = re.compile(r"^<(/?)([A-Za-z][A-Za-z0-9]*)((?:\s[^>]*?)?)(/?)>$", flags=re.DOTALL)

_NEWLINE_TAGS = frozenset({"br", "p", "div"})
_SELF_CLOSING_LINE_TAGS = frozenset({"br"})


def _tag_replacement(tag: str) -> str:
    m = _TAG_PARTS_RE.match(tag)
    if not m:
        return ""
    closing, name, _, self_closing = m.groups()
    name = name.lower()
    if name in _SELF_CLOSING_LINE_TAGS or (name in _NEWLINE_TAGS and (closing or self_closing)):
        return "\n"
    return ""


def _is_opening_tag(token: str) -> bool:
    m = _TAG_PARTS_RE.match(token)
    return bool(m) and not m.group(1) and not m.group(4)


def decode_entities(text: str) -> str:
    return html.unescape(text)


def escape_text(text: str) -> str:
    """Escape plain text for insertion into markup (tags and entities stay literal)."""
    return html.escape(text, quote=False)


def contains_entity(text: str) -> bool:
    return ENTITY_RE.search(text) is not None


@dataclass(frozen=True)
class MarkupItem:
    """A tag, block or entity that extraction replaced (possibly by nothing)."""

    markup_start: int
    markup_end: int
    text_start: int
    replacement: str
    is_entity: bool

    @property
    def text_end(self) -> int:
        return self.text_start + len(self.replacement)


@dataclass(frozen=True)
class CharSource:
    """Markup range that produced one character of extracted text."""

    markup_start: int
    markup_end: int
    synthetic: bool = False  # produced by a tag (e.g. <br>), not by document text


@dataclass(frozen=True)
class ExtractedText:
    markup: str
    text: str
    items: tuple[MarkupItem, ...]
    sources: tuple[CharSource, ...]

    @cached_property
    def _item_starts(self) -> list[int]:
        return [item.markup_start for item in self.items]

    def to_text_offset(self, markup_offset: int) -> int:
        """Map a markup offset onto the extracted text.

        Offsets inside a tag or entity collapse to the text position where it was.
        """
        idx = bisect_right(self._item_starts, markup_offset) - 1
        if idx < 0:
            return markup_offset
        item = self.items[idx]
        if markup_offset < item.markup_end:
            return item.text_start
        return markup_offset - item.markup_end + item.text_end

    def insertion_point(self, text_offset: int) -> int:
        """Markup offset where text inserted at ``text_offset`` belongs."""
        if not self.sources:
            pos = 0
            for item in self.items:
                if item.markup_start != pos or item.is_entity or not _is_opening_tag(
                    self.markup[item.markup_start : item.markup_end]
                ):
                    break
                pos = item.markup_end
            return pos
        if text_offset <= 0:
            return self.sources[0].markup_start
        return self.sources[min(text_offset, len(self.sources)) - 1].markup_end


def extract_text(markup: str) -> ExtractedText:
    """Strip tags, decode entities and keep the offset mapping back to ``markup``."""
    items: list[MarkupItem] = []
    sources: list[CharSource] = []
    parts: list[str] = []
    text_len = 0
    pos = 0

    for m in MARKUP_RE.finditer(markup):
        token = m.group(0)
        is_entity = token.startswith("&")
        if is_entity:
            replacement = decode_entities(token)
            if replacement == token:
                # Unknown entity, keep as literal text.
                continue
        else:
            replacement = _tag_replacement(token)

        for i in range(pos, m.start()):
            sources.append(CharSource(i, i + 1))
        parts.append(markup[pos : m.start()])
        text_len += m.start() - pos

        items.append(
            MarkupItem(
                markup_start=m.start(),
                markup_end=m.end(),
                text_start=text_len,
                replacement=replacement,
                is_entity=is_entity,
            )
        )
        for _ in replacement:
            sources.append(CharSource(m.start(), m.end(), synthetic=not is_entity))
        parts.append(replacement)
        text_len += len(replacement)
        pos = m.end()

    for i in range(pos, len(markup)):
        sources.append(CharSource(i, i + 1))
    parts.append(markup[pos:])

    return ExtractedText(markup=markup, text="".join(parts), items=tuple(items), sources=tuple(sources))
