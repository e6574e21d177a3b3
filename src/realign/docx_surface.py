from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from docx.document import Document as DocxDocument
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.table import Table, _Cell
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from .adapters import DocumentAdapter
from .composite import MultiRegionAdapter
from .config import RealignConfig
from .models import InputFormat, Span
from .surfaces import SelectionState

_logger = logging.getLogger(__name__)

# Run children the surface understands; runs holding anything else (drawings, fields, ...) are left alone.
_SIMPLE_RUN_CHILDREN = {
    "rPr",
    "t",
    "tab",
    "ptab",
    "br",
    "cr",
    "noBreakHyphen",
    "softHyphen",
    "lastRenderedPageBreak",
}


def _local_name(element: Any) -> str:
    return element.tag.split("}")[-1]


def _is_simple_run(run: Run) -> bool:
    return all(_local_name(child) in _SIMPLE_RUN_CHILDREN for child in run._r.iterchildren())


def _element_text(element: Any) -> str:
    # Same reading as python-docx's Run.text; page breaks and soft hyphens contribute nothing.
    name = _local_name(element)
    if name == "t":
        return element.text or ""
    if name in ("tab", "ptab"):
        return "\t"
    if name == "cr":
        return "\n"
    if name == "br":
        return "\n" if element.get(qn("w:type"), "textWrapping") == "textWrapping" else ""
    if name == "noBreakHyphen":
        return "-"
    return ""


def _set_text(t: Any, text: str) -> None:
    t.text = text
    if text != text.strip():
        t.set(qn("xml:space"), "preserve")


def _new_text_element(text: str) -> Any:
    t = OxmlElement("w:t")
    _set_text(t, text)
    return t


@dataclass(frozen=True)
class _Piece:
    """One text-bearing child of a run and its range in the paragraph text."""

    run: Run
    element: Any
    start: int
    end: int
    text: str

    @property
    def is_text_node(self) -> bool:
        return _local_name(self.element) == "t"


class DocxParagraphSurface:
    """Plain-text view of a python-docx paragraph.

    The text is the concatenation of its simple runs. Commits edit only the
    run children that intersect the span: every run keeps its ``w:rPr`` and
    breaks or hyphen marks that carry no text stay in place.
    """

    input_format = InputFormat.TEXT

    def __init__(self, paragraph: Paragraph) -> None:
        self.paragraph = paragraph
        self.selection = SelectionState()

    def _pieces(self) -> list[_Piece]:
        out: list[_Piece] = []
        pos = 0
        for run in self.paragraph.runs:
            if not _is_simple_run(run):
                continue
            for child in run._r.iterchildren():
                text = _element_text(child)
                if text:
                    out.append(_Piece(run, child, pos, pos + len(text), text))
                    pos += len(text)
        return out

    def get_current_text(self) -> str:
        return "".join(p.text for p in self._pieces())

    def extract_current_text(self) -> str:
        return self.get_current_text()

    def get_selectable(self) -> SelectionState:
        return self.selection

    def commit(self, span: Span, text: str) -> None:
        pieces = self._pieces()
        length = pieces[-1].end if pieces else 0
        if span.end > length:
            raise ValueError(f"Span {span.to_list()} exceeds paragraph text length {length}")

        if not pieces:
            if text:
                self.paragraph.add_run(text)
            return

        touched = [p for p in pieces if p.start < span.end and p.end > span.start]
        if not touched:
            self._insert(pieces, span.start, text)
            return

        for idx, piece in enumerate(touched):
            insert = text if idx == 0 else ""
            if piece.is_text_node:
                head = piece.text[: max(0, span.start - piece.start)]
                tail = piece.text[max(0, span.end - piece.start) :]
                remaining = head + insert + tail
                if remaining:
                    _set_text(piece.element, remaining)
                else:
                    self._remove(piece.element)
            else:
                # Tabs and line breaks are one character, so a touched one is covered.
                if insert:
                    piece.element.addprevious(_new_text_element(insert))
                self._remove(piece.element)

        seen: set[Any] = set()
        for piece in touched:
            r = piece.run._r
            if r in seen:
                continue
            seen.add(r)
            if all(_local_name(child) == "rPr" for child in r.iterchildren()):
                self._remove(r)

    def _insert(self, pieces: list[_Piece], offset: int, text: str) -> None:
        if not text:
            return
        # Extend the piece that ends at the offset so the insertion takes its run's formatting.
        target = pieces[0]
        for p in pieces:
            if p.start < offset <= p.end:
                target = p
                break
        cut = offset - target.start
        if target.is_text_node:
            _set_text(target.element, target.text[:cut] + text + target.text[cut:])
        elif cut:
            target.element.addnext(_new_text_element(text))
        else:
            target.element.addprevious(_new_text_element(text))

    @staticmethod
    def _remove(element: Any) -> None:
        parent = element.getparent()
        if parent is not None:
            parent.remove(element)


def _parent_element(parent: Any):
    if isinstance(parent, _Cell):
        return parent._tc
    return parent._element.body if hasattr(parent._element, "body") else parent._element


def iter_block_items(parent: Any) -> Iterator[Paragraph | Table]:
    """Yield the Paragraph and Table children of a document or cell in document order."""
    for child in _parent_element(parent).iterchildren():
        tag = child.tag.lower()
        if tag.endswith("}p"):
            yield Paragraph(child, parent)
        elif tag.endswith("}tbl"):
            yield Table(child, parent)


def iter_paragraph_locations(doc: DocxDocument, *, include_tables: bool = True) -> Iterator[tuple[str, Paragraph]]:
    """Yield ``(location, paragraph)`` for body paragraphs and, optionally, table cells."""

    def walk_table(table: Table, base_loc: str) -> Iterator[tuple[str, Paragraph]]:
        seen: set[Any] = set()
        for r_i, row in enumerate(table.rows):
            for c_i, cell in enumerate(row.cells):
                # Merged cells repeat across the grid; visit each one once.
                if cell._tc in seen:
                    continue
                seen.add(cell._tc)
                cell_loc = f"{base_loc}/r{r_i}/c{c_i}"
                p_i = 0
                t_i = 0
                for item in iter_block_items(cell):
                    if isinstance(item, Paragraph):
                        yield f"{cell_loc}/p{p_i}", item
                        p_i += 1
                    else:
                        yield from walk_table(item, f"{cell_loc}/t{t_i}")
                        t_i += 1

    p_idx = 0
    t_idx = 0
    for item in iter_block_items(doc):
        if isinstance(item, Paragraph):
            yield f"body/p{p_idx}", item
            p_idx += 1
        else:
            if include_tables:
                yield from walk_table(item, f"body/t{t_idx}")
            t_idx += 1


def build_docx_adapter(
    document: DocxDocument,
    *,
    include_tables: bool = True,
    config: RealignConfig | None = None,
) -> MultiRegionAdapter:
    """One region per paragraph, keyed by its location in the document."""
    multi = MultiRegionAdapter(config=config)
    for location, paragraph in iter_paragraph_locations(document, include_tables=include_tables):
        multi.add_region(DocumentAdapter(DocxParagraphSurface(paragraph), config=config), region_id=location)
    _logger.debug(f"Built docx adapter with {len(multi.region_ids)} region(s)")
    return multi
