# cvtransformer/services/cv/consolidator.py
"""Section Consolidator - folds document-specific section names into the six canonical fields."""
from __future__ import annotations

import logging
from typing import Dict, List

from cvtransformer.schemas.cv import ConsolidatedSections, SectionMap
from cvtransformer.services.cv.section_vocabulary import (
    CANONICAL_FIELDS,
    EXPERIENCE,
    canonical_field_for,
)

logger = logging.getLogger("cv.consolidator")

SECTION_SEPARATOR = "\n\n"


def unmapped_marker(section_name: str) -> str:
    return f"--- {section_name} ---"


def consolidate_sections(section_map: SectionMap) -> ConsolidatedSections:
    """
    Build the fixed-shape record. Sections mapping to the same field are
    concatenated in encounter order with a blank line between them; sections
    with no mapping are appended to experience under a visible marker.
    """
    buckets: Dict[str, List[str]] = {name: [] for name in CANONICAL_FIELDS}
    unmapped: List[str] = []

    for name, content in section_map.sections.items():
        content = (content or "").strip()
        target = canonical_field_for(name)
        if target is None:
            logger.info("📝 Found unmapped section: '%s'. Adding to experience catch-all.", name)
            unmapped.append(f"{unmapped_marker(name)}\n{content}".strip())
            continue
        if content:
            buckets[target].append(content)

    buckets[EXPERIENCE].extend(unmapped)
    fields = {name: SECTION_SEPARATOR.join(parts) for name, parts in buckets.items()}
    consolidated = ConsolidatedSections(**fields)

    logger.info(
        "Consolidation complete: %s",
        ", ".join(f"{k}={len(v)} chars" for k, v in fields.items()),
    )
    return consolidated
