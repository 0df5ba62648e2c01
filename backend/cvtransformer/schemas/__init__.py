# backend/cvtransformer/schemas/__init__.py
from cvtransformer.schemas.cv import (
    ConsolidatedSections,
    EducationItem,
    LanguageItem,
    PersonalInfo,
    PublicationItem,
    SectionMap,
    StructuredCV,
    WorkExperienceItem,
    build_fallback_cv,
)

__all__ = [
    "ConsolidatedSections",
    "EducationItem",
    "LanguageItem",
    "PersonalInfo",
    "PublicationItem",
    "SectionMap",
    "StructuredCV",
    "WorkExperienceItem",
    "build_fallback_cv",
]
