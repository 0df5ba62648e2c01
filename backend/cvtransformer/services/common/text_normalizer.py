# cvtransformer/services/common/text_normalizer.py
from __future__ import annotations
import re
import unicodedata


# Zero-width and BOM characters that Word and PDF exports leave behind
_INVISIBLE_RE = re.compile(r"[\u200b\u200c\u200d\u2060\ufeff\x00]")

# Runs of horizontal whitespace (not newlines)
_HSPACE_RE = re.compile(r"[ \t\u00a0\u2007\u202f]+")

_MANY_BLANK_LINES_RE = re.compile(r"\n{3,}")


def clean_extracted_text(text: str) -> str:
    """
    Normalize raw document text before segmentation:
    1) NFC-normalize and drop invisible characters
    2) unify line endings
    3) collapse horizontal whitespace, strip each line
    4) keep at most one blank line in a row
    Line structure is preserved, headers must stay on their own lines.
    """
    if not text:
        return ""
    buf = unicodedata.normalize("NFC", text)
    buf = _INVISIBLE_RE.sub("", buf)
    buf = buf.replace("\r\n", "\n").replace("\r", "\n").replace("\f", "\n")
    lines = [_HSPACE_RE.sub(" ", line).strip() for line in buf.split("\n")]
    buf = "\n".join(lines)
    buf = _MANY_BLANK_LINES_RE.sub("\n\n", buf)
    return buf.strip()


def is_extraction_broken(text: str) -> bool:
    """
    Heuristic for one-char-per-line garbage from PDF extraction:
    more than 40% of lines with at most 2 characters (over 10+ lines).
    """
    if not text or not text.strip():
        return True
    lines = text.strip().split("\n")
    short_lines = sum(1 for line in lines if len(line.strip()) <= 2)
    return len(lines) > 10 and (short_lines / len(lines)) > 0.4
