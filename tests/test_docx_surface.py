from __future__ import annotations

import asyncio

from docx import Document
from docx.enum.text import WD_BREAK
from docx.oxml import OxmlElement
from docx.oxml.ns import qn

from realign import build_docx_adapter
from realign.docx_surface import DocxParagraphSurface, iter_paragraph_locations
from realign.models import Check, CheckedPart, CheckResult, MatchWithReplacement, Span


def _styled_paragraph():
    doc = Document()
    p = doc.add_paragraph()
    p.add_run("Hello ")
    bold = p.add_run("bold")
    bold.bold = True
    p.add_run(" world")
    return doc, p


def test_surface_text_is_concatenated_runs():
    _, p = _styled_paragraph()
    assert DocxParagraphSurface(p).get_current_text() == "Hello bold world"


def test_commit_inside_one_run_keeps_its_formatting():
    _, p = _styled_paragraph()
    surface = DocxParagraphSurface(p)
    surface.commit(Span(6, 10), "strong")
    assert [r.text for r in p.runs] == ["Hello ", "strong", " world"]
    assert p.runs[1].bold is True
    assert p.runs[0].bold is None


def test_commit_across_runs_removes_emptied_runs():
    _, p = _styled_paragraph()
    surface = DocxParagraphSurface(p)
    surface.commit(Span(4, 12), "X")
    assert surface.get_current_text() == "HellXorld"
    assert [r.text for r in p.runs] == ["HellX", "orld"]

    surface.commit(Span(4, 9), "")
    assert [r.text for r in p.runs] == ["Hell"]


def test_insertion_extends_the_preceding_run():
    _, p = _styled_paragraph()
    surface = DocxParagraphSurface(p)
    surface.commit(Span(10, 10), "er")
    assert [r.text for r in p.runs] == ["Hello ", "bolder", " world"]
    assert p.runs[1].bold is True

    surface.commit(Span(0, 0), ">")
    assert p.runs[0].text == ">Hello "


def test_commit_into_empty_paragraph_adds_a_run():
    doc = Document()
    p = doc.add_paragraph()
    surface = DocxParagraphSurface(p)
    surface.commit(Span(0, 0), "new")
    assert p.text == "new"


def _child_names(run) -> list[str]:
    return [child.tag.split("}")[-1] for child in run._r.iterchildren()]


def test_commit_keeps_page_break_in_the_same_run():
    doc = Document()
    p = doc.add_paragraph()
    run = p.add_run("Hello world")
    run.add_break(WD_BREAK.PAGE)
    surface = DocxParagraphSurface(p)

    surface.commit(Span(0, 5), "Howdy")

    assert surface.get_current_text() == "Howdy world"
    breaks = run._r.findall(qn("w:br"))
    assert len(breaks) == 1
    assert breaks[0].get(qn("w:type")) == "page"


def test_commit_across_text_nodes_keeps_rendered_page_break():
    doc = Document()
    p = doc.add_paragraph()
    run = p.add_run("Hello ")
    run._r.append(OxmlElement("w:lastRenderedPageBreak"))
    run._r.add_t("world")
    surface = DocxParagraphSurface(p)
    assert surface.get_current_text() == "Hello world"

    surface.commit(Span(4, 8), "X")

    assert surface.get_current_text() == "HellXrld"
    assert _child_names(run) == ["t", "lastRenderedPageBreak", "t"]


def test_commit_replaces_a_tab_with_text():
    doc = Document()
    p = doc.add_paragraph()
    run = p.add_run("a\tb")
    surface = DocxParagraphSurface(p)

    surface.commit(Span(1, 2), "-")

    assert run.text == "a-b"
    assert "tab" not in _child_names(run)


def test_paragraph_locations_cover_body_and_tables():
    doc = Document()
    doc.add_paragraph("first")
    doc.add_paragraph("second")
    table = doc.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "left"
    table.cell(0, 1).text = "right"

    locations = [loc for loc, _ in iter_paragraph_locations(doc)]
    assert locations == ["body/p0", "body/p1", "body/t0/r0/c0/p0", "body/t0/r0/c1/p0"]
    assert [loc for loc, _ in iter_paragraph_locations(doc, include_tables=False)] == ["body/p0", "body/p1"]


def test_docx_adapter_replaces_across_paragraphs():
    doc = Document()
    doc.add_paragraph("The quick fox")
    doc.add_paragraph("jumps over")
    table = doc.add_table(rows=1, cols=1)
    table.cell(0, 0).text = "teh dog"

    multi = build_docx_adapter(doc)
    assert multi.region_ids == ["body/p0", "body/p1", "body/t0/r0/c0/p0"]

    multi.register_check_call(Check("d1"))
    content = asyncio.run(multi.extract_content_for_check()).content
    multi.register_check_result(CheckResult(CheckedPart("d1", Span(0, len(content)))))

    quick = content.index("quick")
    teh = content.index("teh")
    matches = [
        MatchWithReplacement(content="teh", range=Span(teh, teh + 3), replacement="the"),
        MatchWithReplacement(content="quick", range=Span(quick, quick + 5), replacement="slow"),
    ]
    selections = multi.replace_ranges("d1", matches)

    assert doc.paragraphs[0].text == "The slow fox"
    assert doc.paragraphs[1].text == "jumps over"
    assert doc.tables[0].cell(0, 0).text == "the dog"
    assert selections == {"body/t0/r0/c0/p0": Span(0, 3), "body/p0": Span(4, 8)}
