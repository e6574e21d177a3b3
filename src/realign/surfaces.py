"""Editor surfaces: the bindings that own a live buffer.

A surface exposes the text to check, the live text used for alignment, a
``commit(span, text)`` primitive and something selectable. Real editors
(browser inputs, rich-text widgets) implement the same protocol elsewhere.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .markup import ExtractedText, escape_text, extract_text
from .models import InputFormat, Span


class Selectable(Protocol):
    def set_selection(self, start: int, end: int) -> None: ...

    def focus(self) -> None: ...

    def scroll_into_view(self) -> None: ...


@runtime_checkable
class EditorSurface(Protocol):
    input_format: InputFormat

    def extract_current_text(self) -> str | Awaitable[str]: ...

    def get_current_text(self) -> str: ...

    def commit(self, span: Span, text: str) -> None: ...

    def get_selectable(self) -> Selectable: ...


@dataclass
class SelectionState:
    """Caret/selection bookkeeping for surfaces without a UI."""

    start: int = 0
    end: int = 0
    focused: bool = False
    scroll_requests: int = 0

    def set_selection(self, start: int, end: int) -> None:
        self.start, self.end = start, end

    def focus(self) -> None:
        self.focused = True

    def scroll_into_view(self) -> None:
        self.scroll_requests += 1

    @property
    def span(self) -> Span:
        return Span(self.start, self.end)


def _check_span(span: Span, length: int) -> None:
    if span.end > length:
        raise ValueError(f"Span {span.to_list()} exceeds text length {length}")


class PlainTextSurface:
    """A plain text buffer, like a textarea."""

    input_format = InputFormat.TEXT

    def __init__(self, text: str = "", *, on_change: Callable[[str], None] | None = None) -> None:
        self.text = text
        self.selection = SelectionState()
        self._on_change = on_change

    def extract_current_text(self) -> str:
        return self.text

    def get_current_text(self) -> str:
        return self.text

    def set_text(self, text: str) -> None:
        self.text = text

    def commit(self, span: Span, text: str) -> None:
        _check_span(span, len(self.text))
        self.text = self.text[: span.start] + text + self.text[span.end :]
        if self._on_change is not None:
            self._on_change(self.text)

    def get_selectable(self) -> SelectionState:
        return self.selection

    @property
    def selected_text(self) -> str:
        return self.text[self.selection.start : self.selection.end]


class HtmlSurface:
    """An HTML fragment edited like a content-editable element.

    The check runs on the markup, alignment and commits on its visible text.
    A commit only touches text characters inside the span: tags in between
    stay where they are and the escaped replacement lands at the first one.
    """

    input_format = InputFormat.HTML

    def __init__(self, markup: str = "", *, on_change: Callable[[str], None] | None = None) -> None:
        self.markup = markup
        self.selection = SelectionState()
        self._on_change = on_change
        self._extraction: tuple[str, ExtractedText] | None = None

    def _extracted(self) -> ExtractedText:
        # Offsets shift with every commit; an extraction is reused only for identical markup.
        if self._extraction is None or self._extraction[0] != self.markup:
            self._extraction = (self.markup, extract_text(self.markup))
        return self._extraction[1]

    def extract_current_text(self) -> str:
        return self.markup

    def get_current_text(self) -> str:
        return self._extracted().text

    def set_markup(self, markup: str) -> None:
        self.markup = markup

    def commit(self, span: Span, text: str) -> None:
        extracted = self._extracted()
        _check_span(span, len(extracted.text))
        markup = self.markup
        escaped = escape_text(text)

        pieces: list[str] = []
        cursor = 0
        inserted = False
        for source in extracted.sources[span.start : span.end]:
            if source.synthetic or source.markup_start < cursor:
                continue
            pieces.append(markup[cursor : source.markup_start])
            if not inserted:
                pieces.append(escaped)
                inserted = True
            cursor = source.markup_end

        if not inserted:
            # Empty span, or only tag-produced characters (line breaks) inside it.
            cursor = extracted.insertion_point(span.start)
            pieces = [markup[:cursor], escaped]
        pieces.append(markup[cursor:])

        self.markup = "".join(pieces)
        if self._on_change is not None:
            self._on_change(self.markup)

    def get_selectable(self) -> SelectionState:
        return self.selection

    @property
    def selected_text(self) -> str:
        return self.get_current_text()[self.selection.start : self.selection.end]
