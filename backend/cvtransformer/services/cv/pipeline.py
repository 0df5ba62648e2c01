# cvtransformer/services/cv/pipeline.py
"""
CV Processing Pipeline - document in, StructuredCV plus a status report out.

Stages:
  1. Read document (text, HTML for DOCX, page-header text)
  2. Segment -> consolidate -> pre-split experience (deterministic)
  3. LLM extraction (field fan-out, or whole-document path when unsegmented)
  4. Backfill contacts from the raw text, validate, report
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import Field

from cvtransformer.core.config import Settings
from cvtransformer.core.exceptions import DocumentUnreadableError
from cvtransformer.schemas.cv import CVModel, ConsolidatedSections, SectionMap, StructuredCV
from cvtransformer.services.common.llm_client import LLMClient
from cvtransformer.services.common.text_normalizer import clean_extracted_text
from cvtransformer.services.cv.consolidator import consolidate_sections
from cvtransformer.services.cv.deterministic import backfill_contacts
from cvtransformer.services.cv.experience_splitter import split_experience_entries
from cvtransformer.services.cv.orchestrator import CVExtractionOrchestrator
from cvtransformer.services.cv.section_vocabulary import PREAMBLE_SECTION
from cvtransformer.services.cv.segmenter import segment_document
from cvtransformer.services.cv.text_extractor import ExtractedDocument, extract_document
from cvtransformer.services.cv.validation import validate_structured_cv

logger = logging.getLogger("cv.pipeline")

ProgressCallback = Callable[[int, str], None]

UNSEGMENTED_WARNING = "unsegmented_document"


@dataclass
class PreparedSections:
    section_map: SectionMap
    consolidated: ConsolidatedSections
    experience_entries: List[str]


class PipelineResult(CVModel):
    cv: StructuredCV
    status: str = "ok"
    failed_fields: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    quality: Dict[str, Any] = Field(default_factory=dict)
    segmentation_strategy: str = ""
    source: str = ""


def _report(progress: Optional[ProgressCallback], percent: int, message: str) -> None:
    logger.info("[%3d%%] %s", percent, message)
    if progress is not None:
        progress(percent, message)


def prepare_sections(document: ExtractedDocument) -> PreparedSections:
    """Deterministic stages only: same document in, same sections out."""
    section_map = segment_document(document.text, document.html)
    if document.header_text:
        section_map = section_map.with_preamble(document.header_text)
    consolidated = consolidate_sections(section_map)
    entries = split_experience_entries(consolidated.experience)
    return PreparedSections(section_map=section_map, consolidated=consolidated, experience_entries=entries)


async def _run(
    document: ExtractedDocument,
    config: Settings,
    llm_client: Optional[LLMClient],
    progress: Optional[ProgressCallback],
) -> PipelineResult:
    # Raises ConfigurationError before any work when credentials are missing
    orchestrator = CVExtractionOrchestrator(config, llm_client)

    _report(progress, 30, "Identifying CV sections")
    prepared = prepare_sections(document)
    warnings: List[str] = []

    if prepared.section_map.segmented:
        _report(progress, 50, f"Extracting {len(prepared.experience_entries)} experience entries and profile fields")
        outcome = await orchestrator.extract(prepared.consolidated, prepared.experience_entries)
    else:
        warnings.append(UNSEGMENTED_WARNING)
        _report(progress, 50, "No section structure found, extracting from the whole document")
        outcome = await orchestrator.extract_whole_document(prepared.section_map.get(PREAMBLE_SECTION))

    _report(progress, 85, "Validating extracted data")
    cv = outcome.cv
    if outcome.status != "failed":
        cv = backfill_contacts(cv, "\n".join(t for t in (document.header_text, document.text) if t))
    validation = validate_structured_cv(cv, prepared.consolidated)
    warnings.extend(validation.warnings)

    result = PipelineResult(
        cv=cv,
        status=outcome.status,
        failed_fields=outcome.failed_fields,
        warnings=warnings,
        quality=validation.summary,
        segmentation_strategy=prepared.section_map.strategy,
        source=str(document.path),
    )
    _report(progress, 100, f"Done: status={result.status}, failed={result.failed_fields}")
    return result


async def process_document(
    path: Union[str, Path],
    config: Settings,
    llm_client: Optional[LLMClient] = None,
    progress: Optional[ProgressCallback] = None,
) -> PipelineResult:
    """
    Full pipeline for a file on disk.
    Raises DocumentUnreadableError or ConfigurationError; LLM failures end up in the result.
    """
    _report(progress, 10, f"Reading {Path(path).name}")
    document = await asyncio.to_thread(extract_document, path)
    return await _run(document, config, llm_client, progress)


async def process_text(
    text: str,
    config: Settings,
    html: Optional[str] = None,
    llm_client: Optional[LLMClient] = None,
    progress: Optional[ProgressCallback] = None,
) -> PipelineResult:
    """Full pipeline for text already extracted (optionally with its HTML rendering)."""
    cleaned = clean_extracted_text(text)
    if not cleaned and not (html and html.strip()):
        raise DocumentUnreadableError("No text to process")
    document = ExtractedDocument(path=Path("<text>"), kind="text", text=cleaned, html=html)
    return await _run(document, config, llm_client, progress)
