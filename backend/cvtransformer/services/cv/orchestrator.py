# cvtransformer/services/cv/orchestrator.py
"""
LLM Extraction Orchestrator - turns consolidated sections into a StructuredCV.

One call per non-empty canonical field plus one per experience entry, all in
flight at once. Each call is retried with linear backoff; a field that still
fails gets a placeholder so the rest of the record survives.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from pydantic import ValidationError

from cvtransformer.core.config import Settings
from cvtransformer.core.exceptions import (
    ConfigurationError,
    FieldExtractionError,
    LLMCallError,
    LLMResponseError,
)
from cvtransformer.schemas.cv import (
    EXTRACTION_FAILED,
    ConsolidatedSections,
    EducationItem,
    LanguageItem,
    PersonalInfo,
    PublicationItem,
    StructuredCV,
    WorkExperienceItem,
    build_fallback_cv,
)
from cvtransformer.services.common.lenient_json import parse_lenient_json
from cvtransformer.services.common.llm_client import LLMClient, load_prompt
from cvtransformer.services.cv.chunking import estimate_tokens, merge_partial_records, split_into_chunks
from cvtransformer.services.cv.section_vocabulary import (
    COUNTRY_EXPERIENCE,
    EXPERIENCE,
    PERSONAL_DETAILS,
    PROFILE,
    PUBLICATIONS,
    QUALIFICATIONS,
)

logger = logging.getLogger("cv.orchestrator")

T = TypeVar("T")

# Load extraction prompts
PROFILE_PROMPT = load_prompt("cv/profile.prompt.txt")
PERSONAL_DETAILS_PROMPT = load_prompt("cv/personal_details.prompt.txt")
COUNTRY_EXPERIENCE_PROMPT = load_prompt("cv/country_experience.prompt.txt")
QUALIFICATIONS_PROMPT = load_prompt("cv/qualifications.prompt.txt")
PUBLICATIONS_PROMPT = load_prompt("cv/publications.prompt.txt")
EXPERIENCE_ENTRY_PROMPT = load_prompt("cv/experience_entry.prompt.txt")
WHOLE_DOCUMENT_PROMPT = load_prompt("cv/whole_document.prompt.txt")

# Order in which results are joined into the record
FIELD_ORDER: Tuple[str, ...] = (PERSONAL_DETAILS, PROFILE, COUNTRY_EXPERIENCE, QUALIFICATIONS, PUBLICATIONS)


@dataclass
class ExtractionOutcome:
    cv: StructuredCV
    failed_fields: List[str] = field(default_factory=list)
    attempted: int = 0

    @property
    def status(self) -> str:
        if not self.failed_fields:
            return "ok"
        if self.attempted and len(self.failed_fields) >= self.attempted:
            return "failed"
        return "partial"


# ---------------------------------------------------------------------------
# Response parsers: raw JSON object -> typed piece of the record
# ---------------------------------------------------------------------------

def _first_list(data: Dict[str, Any], *keys: str) -> List[Any]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, list):
            return value
    for key in keys:
        if key in data and data[key] not in (None, ""):
            raise LLMResponseError(f"Expected a list under '{key}'", details={"keys": list(data)})
    return []


def _validate_items(model, items: Sequence[Any]) -> List[Any]:
    out = []
    for item in items:
        if isinstance(item, str):
            item = {"citation": item} if model is PublicationItem else {"details": item}
        try:
            out.append(model.model_validate(item))
        except ValidationError as e:
            raise LLMResponseError(f"Invalid {model.__name__}: {e.error_count()} error(s)") from e
    return out


def parse_profile(data: Dict[str, Any]) -> str:
    value = data.get("profile", data.get("summary"))
    if value is not None and not isinstance(value, str):
        raise LLMResponseError("'profile' must be a string")
    return (value or "").strip()


def parse_personal_details(data: Dict[str, Any]) -> Tuple[PersonalInfo, List[LanguageItem]]:
    source = data.get("personalInfo") if isinstance(data.get("personalInfo"), dict) else data
    try:
        info = PersonalInfo.model_validate(source)
    except ValidationError as e:
        raise LLMResponseError(f"Invalid personal details: {e.error_count()} error(s)") from e
    raw_langs = data.get("languages", source.get("languages")) or []
    if not isinstance(raw_langs, list):
        raise LLMResponseError("'languages' must be a list")
    languages = []
    for lang in raw_langs:
        if isinstance(lang, str):
            lang = {"language": lang}
        try:
            item = LanguageItem.model_validate(lang)
        except ValidationError as e:
            raise LLMResponseError(f"Invalid language item: {e.error_count()} error(s)") from e
        if item.language and item.language not in {x.language for x in languages}:
            languages.append(item)
    return info, languages


def parse_countries(data: Dict[str, Any]) -> List[str]:
    items = _first_list(data, "countries", "countryWorkExperience", "country_work_experience")
    return [str(c).strip() for c in items if str(c).strip()]


def parse_qualifications(data: Dict[str, Any]) -> List[EducationItem]:
    return _validate_items(EducationItem, _first_list(data, "qualifications", "education"))


def parse_publications(data: Dict[str, Any]) -> List[PublicationItem]:
    return _validate_items(PublicationItem, _first_list(data, "publications"))


def parse_experience_entry(data: Dict[str, Any]) -> List[WorkExperienceItem]:
    # Usually one object per entry; some models wrap it in a list anyway
    items = _first_list(data, "experience", "workExperience", "entries") or [data]
    return [e for e in _validate_items(WorkExperienceItem, items) if not e.is_empty()]


def parse_partial_record(data: Dict[str, Any]) -> StructuredCV:
    data = dict(data)
    personal = data.get("personalInfo") or data.get("personal_info")
    # Languages sometimes come back nested under personalInfo
    if isinstance(personal, dict) and personal.get("languages") and not data.get("languages"):
        data["languages"] = personal["languages"]
    if isinstance(data.get("languages"), list):
        data["languages"] = [{"language": l} if isinstance(l, str) else l for l in data["languages"]]
    if isinstance(data.get("publications"), list):
        data["publications"] = [{"citation": p} if isinstance(p, str) else p for p in data["publications"]]
    try:
        return StructuredCV.model_validate(data)
    except ValidationError as e:
        raise LLMResponseError(f"Invalid CV record: {e.error_count()} error(s)") from e


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class CVExtractionOrchestrator:
    """
    Fans field-level LLM calls out concurrently and joins the results.

    Flow:
    1. One task per non-empty canonical field, one per experience entry
    2. Each task: call LLM -> lenient JSON parse -> shape validation, retried on failure
    3. Join results in a fixed order; failed fields get placeholders
    """

    def __init__(self, config: Settings, llm_client: Optional[LLMClient] = None):
        config.require_llm_credentials()
        self.config = config
        self.llm = llm_client if llm_client is not None else LLMClient(config)

    # ----- single call with retry -----
    async def call_with_retry(self, label: str, system_prompt: str, text: str, parse: Callable[[Dict[str, Any]], T]) -> T:
        """
        Up to LLM_MAX_ATTEMPTS tries; the wait before retry n is LLM_RETRY_DELAY_S * n.
        Raises FieldExtractionError once every attempt has failed.
        """
        attempts = self.config.LLM_MAX_ATTEMPTS
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": text},
        ]
        loop = asyncio.get_running_loop()
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                raw = await loop.run_in_executor(None, partial(self.llm.chat_text, messages))
                parsed = parse_lenient_json(raw)
                if not parsed.ok:
                    raise LLMResponseError(parsed.error or "Unparseable JSON", details={"preview": (raw or "")[:300]})
                result = parse(parsed.data)
                if attempt > 1:
                    logger.info("✓ %s succeeded on attempt %d/%d", label, attempt, attempts)
                return result
            except (LLMCallError, LLMResponseError) as e:
                last_error = e
                logger.warning("🔄 %s attempt %d/%d failed: %s", label, attempt, attempts, e.message)
                if attempt < attempts:
                    await asyncio.sleep(self.config.LLM_RETRY_DELAY_S * attempt)

        raise FieldExtractionError(label, attempts, last_error)

    async def _settle(self, label: str, coro) -> Tuple[str, Any, Optional[FieldExtractionError]]:
        try:
            return label, await coro, None
        except FieldExtractionError as e:
            logger.error("❌ %s", e.message)
            return label, None, e
        except ConfigurationError:
            raise
        except Exception as e:
            logger.exception("❌ %s failed with an unexpected error: %s", label, e)
            return label, None, FieldExtractionError(label, 1, e)

    # ----- section path -----
    async def extract(self, sections: ConsolidatedSections, entries: Sequence[str]) -> ExtractionOutcome:
        """Extract every non-empty field and experience entry; never raises for LLM failures."""
        try:
            return await self._extract(sections, entries)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.exception("Unexpected error during extraction: %s", e)
            return ExtractionOutcome(cv=build_fallback_cv(str(e)), failed_fields=["*"], attempted=1)

    async def _extract(self, sections: ConsolidatedSections, entries: Sequence[str]) -> ExtractionOutcome:
        jobs: List[Tuple[str, Any]] = []
        field_calls = {
            PERSONAL_DETAILS: (PERSONAL_DETAILS_PROMPT, parse_personal_details),
            PROFILE: (PROFILE_PROMPT, parse_profile),
            COUNTRY_EXPERIENCE: (COUNTRY_EXPERIENCE_PROMPT, parse_countries),
            QUALIFICATIONS: (QUALIFICATIONS_PROMPT, parse_qualifications),
            PUBLICATIONS: (PUBLICATIONS_PROMPT, parse_publications),
        }
        for name in FIELD_ORDER:
            text = getattr(sections, name)
            if not text.strip():
                logger.debug("Skipping empty section '%s'", name)
                continue
            prompt, parser = field_calls[name]
            jobs.append((name, self.call_with_retry(name, prompt, text, parser)))

        for idx, entry in enumerate(entries):
            label = f"{EXPERIENCE}[{idx}]"
            jobs.append((label, self.call_with_retry(label, EXPERIENCE_ENTRY_PROMPT, entry, parse_experience_entry)))

        if not jobs:
            logger.warning("⚠️ No non-empty sections to extract")
            return ExtractionOutcome(cv=StructuredCV())

        logger.info("Dispatching %d LLM call(s): %s", len(jobs), [label for label, _ in jobs])
        settled = await asyncio.gather(*(self._settle(label, coro) for label, coro in jobs))
        results = {label: value for label, value, err in settled if err is None}
        failed = [label for label, _value, err in settled if err is not None]

        if len(failed) == len(jobs):
            logger.error("❌ All %d extraction call(s) failed; returning fallback record", len(jobs))
            return ExtractionOutcome(cv=build_fallback_cv(), failed_fields=failed, attempted=len(jobs))

        cv = self._assemble(results, failed, len(entries))
        logger.info(
            "Extraction complete: %d/%d call(s) succeeded, %d role(s), failed=%s",
            len(jobs) - len(failed), len(jobs), len(cv.work_experience), failed,
        )
        return ExtractionOutcome(cv=cv, failed_fields=failed, attempted=len(jobs))

    @staticmethod
    def _assemble(results: Dict[str, Any], failed: List[str], entry_count: int) -> StructuredCV:
        personal_info, languages = PersonalInfo(), []
        if PERSONAL_DETAILS in results:
            personal_info, languages = results[PERSONAL_DETAILS]
        elif PERSONAL_DETAILS in failed:
            # email/phone stay empty so the contact backfill can still recover them
            personal_info = PersonalInfo(
                name=EXTRACTION_FAILED,
                title=EXTRACTION_FAILED,
                location=EXTRACTION_FAILED,
                nationality=EXTRACTION_FAILED,
            )

        summary = results.get(PROFILE, "")
        if PROFILE in failed:
            summary = EXTRACTION_FAILED

        work: List[WorkExperienceItem] = []
        for idx in range(entry_count):
            work.extend(results.get(f"{EXPERIENCE}[{idx}]") or [])

        return StructuredCV(
            personal_info=personal_info,
            summary=summary,
            work_experience=work,
            education=results.get(QUALIFICATIONS, []),
            publications=results.get(PUBLICATIONS, []),
            languages=languages,
            country_work_experience=results.get(COUNTRY_EXPERIENCE, []),
        )

    # ----- whole-document path -----
    async def extract_whole_document(self, text: str) -> ExtractionOutcome:
        """
        Used when the document could not be segmented: one call when the text
        fits LLM_MAX_INPUT_TOKENS, otherwise chunk, extract each chunk and merge.
        """
        try:
            return await self._extract_whole_document(text)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.exception("Unexpected error during whole-document extraction: %s", e)
            return ExtractionOutcome(cv=build_fallback_cv(str(e)), failed_fields=["*"], attempted=1)

    async def _extract_whole_document(self, text: str) -> ExtractionOutcome:
        if not (text or "").strip():
            return ExtractionOutcome(cv=StructuredCV())

        if estimate_tokens(text) <= self.config.LLM_MAX_INPUT_TOKENS:
            chunks = [text]
        else:
            chunks = split_into_chunks(text, self.config.CHUNK_MAX_TOKENS)
        logger.info("Whole-document extraction over %d chunk(s)", len(chunks))

        settled = await asyncio.gather(*(
            self._settle(
                f"document[{i}]",
                self.call_with_retry(f"document[{i}]", WHOLE_DOCUMENT_PROMPT, chunk, parse_partial_record),
            )
            for i, chunk in enumerate(chunks)
        ))
        partials = [value for _label, value, err in settled if err is None]
        failed = [label for label, _value, err in settled if err is not None]

        if not partials:
            logger.error("❌ Whole-document extraction failed for every chunk; returning fallback record")
            return ExtractionOutcome(cv=build_fallback_cv(), failed_fields=failed, attempted=len(chunks))

        cv = partials[0] if len(partials) == 1 else merge_partial_records(partials)
        return ExtractionOutcome(cv=cv, failed_fields=failed, attempted=len(chunks))
