# cvtransformer/services/cv/text_extractor.py
"""Document reading for CV files: DOCX (mammoth text + HTML, python-docx page headers),
PDF (PyMuPDF with layout-aware block sorting, pdfplumber fallback), legacy DOC via catdoc, and TXT."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import fitz  # PyMuPDF
import mammoth
import pdfplumber
from docx import Document

from cvtransformer.core.exceptions import DocumentUnreadableError
from cvtransformer.services.common.text_normalizer import clean_extracted_text, is_extraction_broken

logger = logging.getLogger("cv.extractor")

SUPPORTED_EXTENSIONS = (".docx", ".doc", ".pdf", ".txt")

# Keep Word heading styles and bold runs visible to the HTML segmenter
MAMMOTH_STYLE_MAP = """
p[style-name='Heading 1'] => h1:fresh
p[style-name='Heading 2'] => h2:fresh
p[style-name='Heading 3'] => h3:fresh
p[style-name='Title'] => h1.title:fresh
p[style-name='Subtitle'] => h2.subtitle:fresh
b => strong
i => em
u => u
"""


@dataclass
class ExtractedDocument:
    path: Path
    kind: str
    text: str
    html: Optional[str] = None
    # Page-header text (name, contacts in text boxes) that mammoth does not render
    header_text: str = ""


def extract_document(path: Union[str, Path]) -> ExtractedDocument:
    """
    Main entry point: read a CV file and return its text (plus HTML for DOCX).
    Raises DocumentUnreadableError when the file is missing, unsupported, corrupt or empty.
    """
    path = Path(path)
    if not path.is_file():
        raise DocumentUnreadableError(f"File not found: {path}", details={"path": str(path)})

    ext = path.suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise DocumentUnreadableError(
            f"Unsupported file type '{ext or path.name}'. Supported: {', '.join(SUPPORTED_EXTENSIONS)}",
            details={"path": str(path)},
        )

    try:
        logger.info("📄 Reading %s (%s, %d bytes)", path.name, ext, path.stat().st_size)
        if ext == ".docx":
            doc = _extract_docx(path)
        elif ext == ".doc":
            doc = ExtractedDocument(path=path, kind="doc", text=_extract_doc(path))
        elif ext == ".pdf":
            doc = ExtractedDocument(path=path, kind="pdf", text=_extract_pdf(path))
        else:
            doc = ExtractedDocument(path=path, kind="txt", text=path.read_text(encoding="utf-8", errors="ignore"))
    except OSError as e:
        raise DocumentUnreadableError(f"Cannot read {path.name}: {e}", details={"path": str(path)}) from e

    doc.text = clean_extracted_text(doc.text)
    doc.header_text = clean_extracted_text(doc.header_text)
    if not doc.text and not doc.header_text:
        raise DocumentUnreadableError(f"No text could be extracted from {path.name}", details={"path": str(path)})

    logger.info(
        "✓ Extracted %d chars from %s (html=%s, page-header=%d chars)",
        len(doc.text), path.name, bool(doc.html), len(doc.header_text),
    )
    return doc


# --- DOCX ---

def _extract_docx(path: Path) -> ExtractedDocument:
    try:
        with path.open("rb") as f:
            html_result = mammoth.convert_to_html(f, style_map=MAMMOTH_STYLE_MAP)
        with path.open("rb") as f:
            text_result = mammoth.extract_raw_text(f)
    except Exception as e:
        # mammoth surfaces zip/XML corruption as a range of exception types
        raise DocumentUnreadableError(f"Cannot read DOCX {path.name}: {e}", details={"path": str(path)}) from e

    for message in list(html_result.messages) + list(text_result.messages):
        logger.debug("mammoth: %s", message)

    return ExtractedDocument(
        path=path,
        kind="docx",
        text=text_result.value or "",
        html=html_result.value or None,
        header_text=extract_docx_page_headers(path),
    )


# Word XML elements that end a line (or separate words) in header text
_XML_SEPARATORS = {"p": "\n", "br": "\n", "cr": "\n", "tab": " "}


def _text_from_xml(element) -> str:
    """
    Header text straight from the part's XML, one line per paragraph.
    Walking the XML picks up text boxes (w:txbxContent), which is where many
    CV templates put the candidate's name and contact line.
    """
    parts = []
    for node in element.iter():
        if not isinstance(node.tag, str):
            continue
        local = node.tag.rsplit("}", 1)[-1]
        if local == "t":
            parts.append(node.text or "")
        elif local in _XML_SEPARATORS:
            parts.append(_XML_SEPARATORS[local])
    lines = (" ".join(line.split()) for line in "".join(parts).splitlines())
    return "\n".join(line for line in lines if line)


def extract_docx_page_headers(path: Path) -> str:
    """Text of every distinct page header in the document, read straight from the header XML."""
    try:
        doc = Document(str(path))
    except Exception as e:
        logger.warning("python-docx could not open %s for header extraction: %s", path.name, e)
        return ""

    parts: List[str] = []
    seen = set()
    for section in doc.sections:
        for header in (section.header, section.first_page_header, section.even_page_header):
            if header is None or header.is_linked_to_previous or header.part in seen:
                continue
            seen.add(header.part)
            text = _text_from_xml(header.part.element)
            if text:
                parts.append(text)
    return "\n".join(parts)


# --- DOC ---

def _extract_doc(path: Path) -> str:
    """Binary .doc files go through catdoc (must be installed on the host)."""
    try:
        result = subprocess.run(
            ["catdoc", "-w", str(path)],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="ignore",
        )
    except FileNotFoundError as e:
        raise DocumentUnreadableError("catdoc tool not found; cannot read .doc files", details={"path": str(path)}) from e
    if result.returncode != 0:
        raise DocumentUnreadableError(f"catdoc failed: {result.stderr.strip()}", details={"path": str(path)})
    return result.stdout


# --- PDF ---

def _extract_pdf(path: Path) -> str:
    try:
        text = parse_pdf_blocks(path)
        if text and not is_extraction_broken(text):
            return text
        logger.warning("PyMuPDF extraction broken or empty for %s, falling back to pdfplumber", path.name)
    except (RuntimeError, ValueError) as e:
        # fitz raises RuntimeError subclasses (FileDataError) for corrupt files
        logger.error("PyMuPDF failed for %s: %s", path.name, e)

    try:
        text = _parse_pdf_plumber(path, x_tolerance=2, y_tolerance=3)
        if is_extraction_broken(text):
            logger.info("Standard pdfplumber extraction broken, retrying with high tolerance...")
            text = _parse_pdf_plumber(path, x_tolerance=15, y_tolerance=10)
    except Exception as e:
        raise DocumentUnreadableError(f"Cannot read PDF {path.name}: {e}", details={"path": str(path)}) from e
    return text


def _parse_pdf_plumber(path: Path, x_tolerance: float, y_tolerance: float) -> str:
    pages = []
    with pdfplumber.open(str(path)) as pdf:
        for page in pdf.pages:
            page_text = page.extract_text(x_tolerance=x_tolerance, y_tolerance=y_tolerance)
            if page_text:
                pages.append(page_text)
    return "\n".join(pages)


def parse_pdf_blocks(path: Path) -> str:
    """
    PyMuPDF 'blocks' mode with column-aware ordering; if that produces
    fragmented text, retry in 'text' mode with PyMuPDF's own sorting.
    """
    with fitz.open(str(path)) as doc:
        full_text = []
        for page in doc:
            # (x0, y0, x1, y1, text, block_no, block_type)
            blocks = [b for b in page.get_text("blocks") if b[6] == 0 and b[4].strip()]
            for b in _sort_blocks_by_layout(blocks):
                full_text.append(b[4].strip())
        text = "\n\n".join(full_text)

        if is_extraction_broken(text):
            logger.info("PyMuPDF 'blocks' mode produced fragmented text. Retrying with 'text' mode...")
            text = "\n".join(page.get_text("text", sort=True) for page in doc)
    return text


# PyMuPDF block tuple: (x0, y0, x1, y1, text, block_no, block_type)
ROW_SNAP = 10  # blocks whose tops are this close count as one row


def _row_key(block) -> tuple:
    return (round(block[1] / ROW_SNAP) * ROW_SNAP, block[0])


def _find_column_gutter(blocks: list) -> Optional[float]:
    """
    x position between the two columns of a sidebar or two-column CV, or None.

    Candidates are the right edges of blocks lying in the middle half of the
    page, plus the page centre; the winner is the one the fewest blocks cross.
    Full-width blocks (name banner, section rules) may cross it, but only a few.
    """
    left = min(b[0] for b in blocks)
    right = max(b[2] for b in blocks)
    low, high = left + (right - left) * 0.25, left + (right - left) * 0.75

    candidates = {b[2] + 1 for b in blocks if low <= b[2] + 1 < high}
    candidates.add((left + right) / 2)
    crossings = {x: sum(1 for b in blocks if b[0] < x < b[2]) for x in candidates}
    gutter = min(candidates, key=lambda x: (crossings[x], x))

    if crossings[gutter] > max(3, len(blocks) * 0.1):
        return None
    return gutter


def _sort_blocks_by_layout(blocks: list) -> list:
    """
    Reading order for one page. Single-column pages read row by row. With a
    column gutter, the page is cut into bands at each full-width block; inside
    a band the left column is read before the right one.
    """
    if not blocks:
        return []
    gutter = _find_column_gutter(blocks)
    if gutter is None:
        return sorted(blocks, key=_row_key)

    dividers = sorted((b for b in blocks if b[0] < gutter < b[2]), key=lambda b: b[1])
    left_column = [b for b in blocks if b[2] <= gutter]
    right_column = [b for b in blocks if b[0] >= gutter]

    ordered = []
    top = float("-inf")
    for divider in dividers + [None]:
        bottom = divider[1] if divider is not None else float("inf")
        for column in (left_column, right_column):
            band = [b for b in column if top <= (b[1] + b[3]) / 2 < bottom]
            ordered.extend(sorted(band, key=lambda b: (b[1], b[0])))
        if divider is not None:
            ordered.append(divider)
            top = divider[1]
    return ordered
