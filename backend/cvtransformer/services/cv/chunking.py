# cvtransformer/services/cv/chunking.py
"""
Chunking/Merge Utility - whole-document path for CVs that could not be segmented.

Long text is cut into token-bounded chunks at natural breakpoints, each chunk is
extracted on its own, and the partial records are merged back into one StructuredCV.
"""
from __future__ import annotations

import logging
import re
from typing import List, Sequence

from cvtransformer.schemas.cv import LanguageItem, PersonalInfo, StructuredCV

logger = logging.getLogger("cv.chunking")

CHARS_PER_TOKEN = 4

# Paragraph breaks first, then sentence ends, then plain line breaks
_BREAKPOINT_RES = (
    re.compile(r"\n\s*\n"),
    re.compile(r"[.!?](?=\s)"),
    re.compile(r"\n"),
)


def estimate_tokens(text: str) -> int:
    return (len(text or "") + CHARS_PER_TOKEN - 1) // CHARS_PER_TOKEN


def _last_breakpoint(window: str) -> int:
    """Index just past the last paragraph/sentence boundary in ``window``, or -1."""
    best = -1
    for pattern in _BREAKPOINT_RES:
        for m in pattern.finditer(window):
            best = max(best, m.end())
    return best


def split_into_chunks(text: str, max_tokens: int) -> List[str]:
    """
    Split ``text`` into ordered chunks of at most ``max_tokens`` (4 chars per token).

    Each chunk ends at the last sentence or paragraph boundary inside the budget
    when that boundary lies past the chunk's halfway point; otherwise the text is
    hard-split at the budget.
    """
    text = text or ""
    max_chars = max(1, max_tokens * CHARS_PER_TOKEN)
    chunks: List[str] = []
    pos = 0
    while pos < len(text):
        if len(text) - pos <= max_chars:
            cut = len(text)
        else:
            window = text[pos : pos + max_chars]
            brk = _last_breakpoint(window)
            cut = pos + brk if brk > max_chars // 2 else pos + max_chars
        piece = text[pos:cut].strip()
        if piece:
            chunks.append(piece)
        pos = cut

    logger.info("Split %d chars into %d chunk(s) (budget %d tokens)", len(text), len(chunks), max_tokens)
    return chunks


def merge_partial_records(records: Sequence[StructuredCV]) -> StructuredCV:
    """
    Merge per-chunk records into a new StructuredCV without touching the inputs:
      - personal info fields: first non-empty value in chunk order
      - summary: longest non-empty value
      - lists: concatenated in chunk order; languages de-duplicated by equality
    """
    personal = {name: "" for name in PersonalInfo.model_fields}
    summary = ""
    work, education, publications, countries = [], [], [], []
    languages: List[LanguageItem] = []

    for record in records:
        for name in personal:
            value = getattr(record.personal_info, name)
            if not personal[name] and value:
                personal[name] = value
        if len(record.summary) > len(summary):
            summary = record.summary
        work.extend(item.model_copy(deep=True) for item in record.work_experience)
        education.extend(item.model_copy(deep=True) for item in record.education)
        publications.extend(item.model_copy(deep=True) for item in record.publications)
        countries.extend(record.country_work_experience)
        for lang in record.languages:
            if lang not in languages:
                languages.append(lang)

    merged = StructuredCV(
        personal_info=PersonalInfo(**personal),
        summary=summary,
        work_experience=work,
        education=education,
        publications=publications,
        languages=languages,
        country_work_experience=countries,
    )
    logger.info(
        "Merged %d partial record(s): %d roles, %d education, %d publications, %d languages",
        len(records), len(work), len(education), len(publications), len(languages),
    )
    return merged
