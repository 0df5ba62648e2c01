# cvtransformer/services/cv/section_vocabulary.py
"""
Static CV section vocabulary: the header spellings the segmenter recognises and the
many-to-one table that maps them onto the six canonical fields.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

PROFILE = "profile"
PERSONAL_DETAILS = "personal_details"
COUNTRY_EXPERIENCE = "country_experience"
QUALIFICATIONS = "qualifications"
PUBLICATIONS = "publications"
EXPERIENCE = "experience"

CANONICAL_FIELDS: Tuple[str, ...] = (
    PROFILE, PERSONAL_DETAILS, COUNTRY_EXPERIENCE, QUALIFICATIONS, PUBLICATIONS, EXPERIENCE,
)

# Name given to text that precedes the first recognised header (name, contacts)
# and to a document that could not be segmented at all.
PREAMBLE_SECTION = "header"

# Header spelling (lower-case) → canonical field
SECTION_MAPPINGS: Dict[str, str] = {
    # profile
    "profile": PROFILE,
    "professional profile": PROFILE,
    "summary": PROFILE,
    "professional summary": PROFILE,
    "executive summary": PROFILE,
    "summary of qualifications": PROFILE,
    "personal statement": PROFILE,
    "career objective": PROFILE,
    "objective": PROFILE,
    "about me": PROFILE,
    # personal details
    "header": PERSONAL_DETAILS,
    "personal details": PERSONAL_DETAILS,
    "personal information": PERSONAL_DETAILS,
    "personal data": PERSONAL_DETAILS,
    "contact details": PERSONAL_DETAILS,
    "contact information": PERSONAL_DETAILS,
    "nationality": PERSONAL_DETAILS,
    "nationality & languages": PERSONAL_DETAILS,
    "nationality and languages": PERSONAL_DETAILS,
    "languages": PERSONAL_DETAILS,
    "language skills": PERSONAL_DETAILS,
    # country experience
    "country work experience": COUNTRY_EXPERIENCE,
    "country experience": COUNTRY_EXPERIENCE,
    "countries of work experience": COUNTRY_EXPERIENCE,
    "international experience": COUNTRY_EXPERIENCE,
    # qualifications
    "qualifications": QUALIFICATIONS,
    "education": QUALIFICATIONS,
    "education and training": QUALIFICATIONS,
    "academic background": QUALIFICATIONS,
    "academic qualifications": QUALIFICATIONS,
    "educational background": QUALIFICATIONS,
    # publications
    "publications": PUBLICATIONS,
    "selected publications": PUBLICATIONS,
    "research publications": PUBLICATIONS,
    "journal articles": PUBLICATIONS,
    "conference papers": PUBLICATIONS,
    "research": PUBLICATIONS,
    # experience
    "experience": EXPERIENCE,
    "work experience": EXPERIENCE,
    "professional experience": EXPERIENCE,
    "highlighted experience": EXPERIENCE,
    "relevant experience": EXPERIENCE,
    "employment": EXPERIENCE,
    "employment history": EXPERIENCE,
    "employment record": EXPERIENCE,
    "career history": EXPERIENCE,
    "work history": EXPERIENCE,
}

# Recognised as headers but with no canonical home; their content is kept
# in the experience catch-all under a visible marker.
UNMAPPED_HEADERS: Tuple[str, ...] = (
    "skills",
    "technical skills",
    "key skills",
    "core competencies",
    "certifications",
    "training",
    "projects",
    "awards",
    "honours and awards",
    "memberships",
    "professional memberships",
    "volunteering",
    "volunteer experience",
    "interests",
    "references",
)

HEADER_VOCABULARY: Tuple[str, ...] = tuple(
    sorted(
        {h for h in SECTION_MAPPINGS if h != PREAMBLE_SECTION} | set(UNMAPPED_HEADERS),
        key=lambda h: (-len(h), h),
    )
)

_WS_RE = re.compile(r"\s+")


def normalize_header(text: str) -> str:
    """Lower-case, collapse whitespace, drop a trailing colon and parenthetical."""
    s = _WS_RE.sub(" ", (text or "")).strip().lower()
    s = re.sub(r"\s*\([^)]*\)\s*$", "", s)
    return s.rstrip(":").strip()


def match_vocabulary(text: str) -> Optional[str]:
    """Return the longest vocabulary entry contained in ``text`` (case-insensitive), if any."""
    norm = normalize_header(text)
    if not norm:
        return None
    for header in HEADER_VOCABULARY:  # longest first
        if re.search(rf"(?<![a-z]){re.escape(header)}(?![a-z])", norm):
            return header
    return None


def canonical_field_for(section_name: str) -> Optional[str]:
    """
    Map a document section name onto a canonical field.
    Exact table hits win; otherwise the longest table spelling contained in
    the name decides ("Highlighted experience (selected)" → experience,
    "Country work experience" → country_experience).
    """
    norm = normalize_header(section_name)
    if not norm:
        return None
    if norm in SECTION_MAPPINGS:
        return SECTION_MAPPINGS[norm]
    if norm in UNMAPPED_HEADERS:
        return None
    for spelling in sorted(SECTION_MAPPINGS, key=len, reverse=True):
        if spelling == PREAMBLE_SECTION:
            continue
        if re.search(rf"(?<![a-z]){re.escape(spelling)}(?![a-z])", norm):
            return SECTION_MAPPINGS[spelling]
    return None


def header_pattern_alternation() -> str:
    """Regex alternation of all header spellings, longest first, whitespace-tolerant."""
    return "|".join(r"\s+".join(re.escape(w) for w in h.split()) for h in HEADER_VOCABULARY)
