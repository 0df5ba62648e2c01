import pytest
from docx import Document

from cvtransformer.core.exceptions import DocumentUnreadableError
from cvtransformer.services.common.text_normalizer import clean_extracted_text, is_extraction_broken
from cvtransformer.services.cv.pipeline import prepare_sections
from cvtransformer.services.cv.text_extractor import _sort_blocks_by_layout, extract_document


def test_txt_file(tmp_path):
    path = tmp_path / "cv.txt"
    path.write_text("Jane Doe\r\n\r\n\r\n\r\nProfile  \r\nEconomist.\u200b", encoding="utf-8")

    doc = extract_document(path)

    assert doc.kind == "txt"
    assert doc.html is None
    assert doc.text == "Jane Doe\n\nProfile\nEconomist."


def test_missing_file(tmp_path):
    with pytest.raises(DocumentUnreadableError):
        extract_document(tmp_path / "nope.docx")


def test_unsupported_extension(tmp_path):
    path = tmp_path / "cv.odt"
    path.write_bytes(b"whatever")

    with pytest.raises(DocumentUnreadableError, match="Unsupported"):
        extract_document(path)


def test_empty_file_is_unreadable(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("   \n", encoding="utf-8")

    with pytest.raises(DocumentUnreadableError):
        extract_document(path)


def test_permission_denied_is_unreadable(tmp_path, monkeypatch):
    path = tmp_path / "locked.txt"
    path.write_text("Jane Doe\nProfile\nEconomist.", encoding="utf-8")

    def deny(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(type(path), "read_text", deny)

    with pytest.raises(DocumentUnreadableError, match="Cannot read"):
        extract_document(path)


def test_corrupt_docx_is_unreadable(tmp_path):
    path = tmp_path / "broken.docx"
    path.write_bytes(b"this is not a zip archive")

    with pytest.raises(DocumentUnreadableError):
        extract_document(path)


def test_docx_html_and_page_header(tmp_path):
    document = Document()
    header = document.sections[0].header
    header.is_linked_to_previous = False
    header.paragraphs[0].text = "Jane Doe | jane@example.org"
    document.add_heading("Profile", level=1)
    document.add_paragraph("Economist with 15 years of experience.")
    document.add_heading("Education", level=1)
    document.add_paragraph("BSc Economics, 2010")
    path = tmp_path / "cv.docx"
    document.save(str(path))

    doc = extract_document(path)

    assert doc.kind == "docx"
    assert "<h1>Profile</h1>" in doc.html
    assert "Jane Doe | jane@example.org" in doc.header_text
    assert "Economist with 15 years of experience." in doc.text

    prepared = prepare_sections(doc)
    assert prepared.section_map.strategy == "html"
    assert prepared.consolidated.profile == "Economist with 15 years of experience."
    assert prepared.consolidated.qualifications == "BSc Economics, 2010"
    assert prepared.consolidated.personal_details.startswith("Jane Doe")


def test_broken_extraction_heuristic():
    assert is_extraction_broken("")
    assert is_extraction_broken("\n".join("abcdefghijkl"))
    assert not is_extraction_broken("Jane Doe\nEconomist\nNairobi")


def test_clean_extracted_text_keeps_line_structure():
    assert clean_extracted_text("  Profile \t\n Economist  and  analyst ") == "Profile\nEconomist and analyst"


def test_two_column_page_reads_left_then_right():
    # (x0, y0, x1, y1, text, block_no, block_type)
    title = (0, 0, 600, 40, "Jane Doe", 0, 0)
    left_top = (0, 50, 250, 80, "Profile", 1, 0)
    right_top = (350, 50, 600, 80, "Experience", 2, 0)
    left_bottom = (0, 100, 250, 130, "Economist.", 3, 0)
    right_bottom = (350, 100, 600, 130, "2020 Lead", 4, 0)

    ordered = _sort_blocks_by_layout([right_bottom, left_top, title, right_top, left_bottom])

    assert [b[4] for b in ordered] == ["Jane Doe", "Profile", "Economist.", "Experience", "2020 Lead"]


def test_single_column_page_reads_row_by_row():
    upper_right = (300, 52, 500, 80, "Nairobi", 1, 0)
    upper_left = (0, 50, 280, 80, "Jane Doe", 0, 0)
    paragraphs = [(0, y, 500, y + 30, f"Paragraph {y}", 2, 0) for y in (220, 100, 180, 140)]

    ordered = _sort_blocks_by_layout(paragraphs + [upper_right, upper_left])

    assert [b[4] for b in ordered] == [
        "Jane Doe", "Nairobi", "Paragraph 100", "Paragraph 140", "Paragraph 180", "Paragraph 220",
    ]


def test_column_block_level_with_a_banner_is_kept():
    banner = (0, 100, 600, 160, "EXPERIENCE", 0, 0)
    beside_banner = (350, 120, 600, 150, "Sidebar note", 1, 0)
    left = (0, 200, 250, 230, "2020 Lead", 2, 0)
    right = (350, 200, 600, 230, "Skills", 3, 0)
    top_left = (0, 0, 250, 30, "Jane Doe", 4, 0)

    ordered = _sort_blocks_by_layout([right, banner, left, beside_banner, top_left])

    assert [b[4] for b in ordered] == ["Jane Doe", "EXPERIENCE", "2020 Lead", "Sidebar note", "Skills"]


def test_page_header_tabs_become_spaces(tmp_path):
    document = Document()
    header = document.sections[0].header
    header.is_linked_to_previous = False
    header.paragraphs[0].text = "Jane Doe\tNairobi"
    header.add_paragraph("")
    header.add_paragraph("+254 20 123 4567")
    document.add_paragraph("Profile")
    path = tmp_path / "cv.docx"
    document.save(str(path))

    doc = extract_document(path)

    assert doc.header_text == "Jane Doe Nairobi\n+254 20 123 4567"
