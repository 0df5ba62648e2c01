"""CV extraction quality checks: compares the StructuredCV against the consolidated source sections."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from cvtransformer.schemas.cv import EXTRACTION_FAILED, PROCESSING_FAILED, ConsolidatedSections, StructuredCV

logger = logging.getLogger("cv.validation")

# Extracted experience text below this share of the source suggests lost content
MIN_EXPERIENCE_COVERAGE = 0.8

ERROR_PENALTY = 0.2
WARNING_PENALTY = 0.1


@dataclass
class ValidationResult:
    """Findings for one extracted CV; the score drops per error and per warning."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    info: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def add_info(self, message: str) -> None:
        self.info.append(message)

    @property
    def quality_score(self) -> float:
        penalty = ERROR_PENALTY * len(self.errors) + WARNING_PENALTY * len(self.warnings)
        return round(max(0.0, 1.0 - penalty), 2)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def summary(self) -> Dict[str, Any]:
        return {
            "valid": self.is_valid,
            "quality_score": self.quality_score,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "info": list(self.info),
        }


def validate_structured_cv(cv: StructuredCV, sections: ConsolidatedSections) -> ValidationResult:
    """
    Checks:
    - failure placeholders left in the record
    - experience content coverage and role count
    - publications and profile present in the source but missing from the record
    """
    result = ValidationResult()
    _check_placeholders(cv, result)
    _validate_experience(cv, sections, result)

    if sections.publications.strip() and not cv.publications:
        result.add_warning("Publications section exists but none were extracted")

    if sections.profile.strip() and not cv.summary:
        result.add_warning("Profile section exists but the summary is empty")

    result.add_info(
        f"Extracted {len(cv.work_experience)} role(s), {len(cv.education)} qualification(s), "
        f"{len(cv.publications)} publication(s), {len(cv.languages)} language(s)"
    )
    for message in result.errors:
        logger.warning("❌ %s", message)
    for message in result.warnings:
        logger.warning("⚠️ %s", message)
    logger.info("✅ Validation complete: quality_score=%.2f", result.quality_score)
    return result


def _is_placeholder(value: str) -> bool:
    return bool(value) and (value.startswith(EXTRACTION_FAILED) or value.startswith(PROCESSING_FAILED))


def _check_placeholders(cv: StructuredCV, result: ValidationResult):
    if _is_placeholder(cv.summary):
        result.add_error("Summary holds an extraction-failure placeholder")
    if _is_placeholder(cv.personal_info.name) or _is_placeholder(cv.personal_info.nationality):
        result.add_error("Personal details hold an extraction-failure placeholder")


def _validate_experience(cv: StructuredCV, sections: ConsolidatedSections, result: ValidationResult):
    source = sections.experience.strip()
    if not source:
        return

    if not cv.work_experience:
        result.add_warning("Experience section exists but no roles were extracted")
        return

    extracted = sum(
        len(role.description)
        + sum(len(r) for r in role.responsibilities)
        + sum(len(a) for a in role.achievements)
        for role in cv.work_experience
    )
    logger.info(
        "📊 Experience validation: source=%d chars, extracted=%d chars, roles=%d",
        len(source), extracted, len(cv.work_experience),
    )
    if extracted < len(source) * MIN_EXPERIENCE_COVERAGE:
        result.add_warning(
            f"Possible experience content loss: {extracted} of {len(source)} source chars extracted"
        )
