# cvtransformer/services/cv/experience_splitter.py
"""
Experience Splitter - breaks the consolidated experience block into one entry per role.

Each role in the source CVs starts on a line opening with a year ("2024",
"2022 – 2023, UNDP ..."). A date in the middle of a line is not a boundary;
such entries stay merged with the previous one.
"""
from __future__ import annotations

import logging
import re
from typing import List

logger = logging.getLogger("cv.splitter")

_ENTRY_BOUNDARY_RE = re.compile(r"\n(?=\d{4})")


def split_experience_entries(experience: str) -> List[str]:
    """Split on every newline followed by a 4-digit number; trimmed, empty pieces dropped."""
    if not experience or not experience.strip():
        return []
    entries = [e.strip() for e in _ENTRY_BOUNDARY_RE.split(experience)]
    entries = [e for e in entries if e]
    logger.info("Pre-split experience block (%d chars) into %d entries", len(experience), len(entries))
    return entries
