# cvtransformer/schemas/cv.py
"""Pydantic records passed between pipeline stages.

Every field has an empty-but-typed default so consumers never need null checks.
Attributes are snake_case; camelCase aliases (personalInfo, workExperience, ...)
are the hand-off format for the DOCX renderer: ``cv.model_dump(by_alias=True)``.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

EXTRACTION_FAILED = "Extraction failed - see server logs"
PROCESSING_FAILED = "Processing failed - check LLM API configuration and server logs"


def _to_text(value: Any) -> str:
    """Coerce loose LLM values (None, numbers, lists) into a stripped string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return "\n".join(_to_text(v) for v in value if _to_text(v))
    return str(value).strip()


def _to_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [t for t in (_to_text(v) for v in value) if t]
    return [_to_text(value)]


class CVModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class _TextFields(CVModel):
    """Base for records whose str fields are coerced from loose LLM values."""

    @model_validator(mode="before")
    @classmethod
    def _coerce_strings(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for name, info in cls.model_fields.items():
            if info.annotation is not str:
                continue
            for key in (name, info.alias):
                if key in out:
                    out[key] = _to_text(out[key])
        return out


# --------------------------------------------------------------------------
# Stage records
# --------------------------------------------------------------------------

class SectionMap(CVModel):
    """
    Section name → section text, as found in the document.

    Names keep the document's own spelling ("WORK EXPERIENCE", "Volunteering");
    lookups are case-insensitive. Only sections found in the document are stored:
    an absent section reads as "" through get(), and the canonical six always
    exist on ConsolidatedSections, which is what downstream stages consume.
    """
    sections: Dict[str, str] = Field(default_factory=dict)
    strategy: str = "none"
    segmented: bool = False

    @field_validator("sections")
    @classmethod
    def _no_empty_names(cls, v: Dict[str, str]) -> Dict[str, str]:
        for name in v:
            if not name or not name.strip():
                raise ValueError("section names must be non-empty")
        return v

    def get(self, name: str) -> str:
        wanted = name.strip().lower()
        for key, text in self.sections.items():
            if key.lower() == wanted:
                return text
        return ""

    def names(self) -> List[str]:
        return list(self.sections.keys())

    def with_preamble(self, text: str) -> "SectionMap":
        """Return a copy whose 'header' section starts with ``text``."""
        text = (text or "").strip()
        if not text:
            return self
        sections = dict(self.sections)
        existing = sections.pop("header", "")
        merged = f"{text}\n{existing}".strip() if existing else text
        return SectionMap(sections={"header": merged, **sections}, strategy=self.strategy, segmented=self.segmented)


class ConsolidatedSections(CVModel):
    profile: str = ""
    personal_details: str = ""
    country_experience: str = ""
    qualifications: str = ""
    publications: str = ""
    experience: str = ""

    model_config = ConfigDict(frozen=True)


# --------------------------------------------------------------------------
# StructuredCV
# --------------------------------------------------------------------------

class PersonalInfo(_TextFields):
    name: str = ""
    title: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    nationality: str = ""


class LanguageItem(_TextFields):
    language: str = ""
    proficiency: str = ""

    model_config = ConfigDict(frozen=True)


class WorkExperienceItem(_TextFields):
    dates: str = ""
    start_date: str = ""
    end_date: str = ""
    role: str = ""
    position: str = ""
    client: str = ""
    company: str = ""
    location: str = ""
    description: str = ""
    responsibilities: List[str] = Field(default_factory=list)
    achievements: List[str] = Field(default_factory=list)

    @field_validator("responsibilities", "achievements", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> List[str]:
        return _to_text_list(v)

    @model_validator(mode="after")
    def _fill_alternate_spellings(self) -> "WorkExperienceItem":
        # Both shapes exist downstream: dates/role/client (per-entry prompt)
        # and startDate/endDate/position/company (whole-document prompt).
        if not self.role and self.position:
            self.role = self.position
        if not self.position and self.role:
            self.position = self.role
        if not self.client and self.company:
            self.client = self.company
        if not self.company and self.client:
            self.company = self.client
        if not self.dates and (self.start_date or self.end_date):
            self.dates = " - ".join(p for p in (self.start_date, self.end_date) if p)
        return self

    def is_empty(self) -> bool:
        return not any((self.dates, self.role, self.client, self.description,
                        self.responsibilities, self.achievements))


class EducationItem(_TextFields):
    degree: str = ""
    institution: str = ""
    year: str = ""
    graduation_date: str = ""
    details: str = ""

    @model_validator(mode="after")
    def _fill_year(self) -> "EducationItem":
        if not self.year and self.graduation_date:
            self.year = self.graduation_date
        if not self.graduation_date and self.year:
            self.graduation_date = self.year
        return self


class PublicationItem(_TextFields):
    citation: str = ""
    title: str = ""
    authors: List[str] = Field(default_factory=list)
    journal: str = ""
    year: str = ""

    @field_validator("authors", mode="before")
    @classmethod
    def _authors(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            return [a.strip() for a in v.split(",") if a.strip()]
        return _to_text_list(v)


class StructuredCV(CVModel):
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    summary: str = ""
    work_experience: List[WorkExperienceItem] = Field(default_factory=list)
    education: List[EducationItem] = Field(default_factory=list)
    publications: List[PublicationItem] = Field(default_factory=list)
    languages: List[LanguageItem] = Field(default_factory=list)
    country_work_experience: List[str] = Field(default_factory=list)

    @field_validator("summary", mode="before")
    @classmethod
    def _summary(cls, v: Any) -> str:
        return _to_text(v)

    @field_validator(
        "work_experience", "education", "publications", "languages", "country_work_experience",
        mode="before",
    )
    @classmethod
    def _never_null(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("country_work_experience")
    @classmethod
    def _unique_countries(cls, v: List[str]) -> List[str]:
        out: List[str] = []
        for c in v:
            c = c.strip()
            if c and c not in out:
                out.append(c)
        return out


def build_fallback_cv(reason: Optional[str] = None) -> StructuredCV:
    """Total-failure record: every field visibly says processing failed."""
    detail = f"{PROCESSING_FAILED} ({reason})" if reason else PROCESSING_FAILED
    return StructuredCV(
        personal_info=PersonalInfo(name=EXTRACTION_FAILED, nationality="Unknown"),
        summary=detail,
        work_experience=[WorkExperienceItem(dates="Unknown", role="Extraction failed",
                                            client="Check server logs", location="Unknown",
                                            description=detail)],
        education=[EducationItem(degree="Extraction failed", institution="Check server logs",
                                 year="Unknown", details=detail)],
        publications=[PublicationItem(citation="Publication extraction failed - check server logs")],
        languages=[LanguageItem(language="Extraction failed", proficiency="Unknown")],
        country_work_experience=["Extraction failed"],
    )
