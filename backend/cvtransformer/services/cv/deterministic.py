from __future__ import annotations
import logging
import re
from typing import Optional

from cvtransformer.schemas.cv import StructuredCV

logger = logging.getLogger("cv.deterministic")

EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.I)
PHONE_RE = re.compile(r"(?:\+?\d{1,3}[-.\s]?)?(?:\(?0?\d{1,3}\)?[-.\s]?)?\d{3}[-.\s]?\d{4,5}")

# Words that never appear in a person's name line
NAME_BLOCKLIST = {
    "resume", "cv", "curriculum", "vitae", "profile", "summary", "contact",
    "phone", "email", "address", "experience", "education", "personal", "details",
}


def find_email(text: str) -> Optional[str]:
    m = EMAIL_RE.search(text or "")
    return m.group(0) if m else None


def find_phone(text: str) -> Optional[str]:
    for m in PHONE_RE.finditer(text or ""):
        candidate = m.group(0).strip()
        # Year ranges ("2019 2023") match the loose pattern; require 9+ digits
        if sum(ch.isdigit() for ch in candidate) >= 9:
            return candidate
    return None


def guess_candidate_name(text: str) -> Optional[str]:
    """
    Guess the name from the first few lines:
    - first 3 non-empty lines only
    - 2-4 words, letters only (hyphens and apostrophes allowed)
    - no header/contact words
    """
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    for line in lines[:3]:
        clean_line = re.sub(r"[|•]", " ", line).strip()
        words = clean_line.split()
        if not 2 <= len(words) <= 4:
            continue
        if not all(w.replace("-", "").replace("'", "").replace(".", "").isalpha() for w in words):
            continue
        if any(w.lower().strip(".") in NAME_BLOCKLIST for w in words):
            continue
        return " ".join(words)
    return None


def backfill_contacts(cv: StructuredCV, source_text: str) -> StructuredCV:
    """
    Fill empty name/email/phone from the document text. Values the LLM
    returned are never overwritten; the input record is left untouched.
    """
    info = cv.personal_info
    updates = {}
    if not info.email:
        email = find_email(source_text)
        if email:
            updates["email"] = email
    if not info.phone:
        phone = find_phone(source_text)
        if phone:
            updates["phone"] = phone
    if not info.name:
        name = guess_candidate_name(source_text)
        if name:
            updates["name"] = name

    if not updates:
        return cv
    logger.info("Backfilled personal info from document text: %s", sorted(updates))
    return cv.model_copy(update={"personal_info": info.model_copy(update=updates)})
