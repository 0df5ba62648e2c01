from cvtransformer.schemas.cv import (
    EXTRACTION_FAILED,
    EducationItem,
    PublicationItem,
    SectionMap,
    StructuredCV,
    WorkExperienceItem,
    build_fallback_cv,
)


def test_defaults_are_empty_not_null():
    cv = StructuredCV()

    assert cv.summary == ""
    assert cv.personal_info.name == ""
    assert cv.work_experience == []
    assert cv.languages == []


def test_null_lists_and_loose_values_coerced():
    cv = StructuredCV.model_validate({
        "personalInfo": {"name": None, "phone": 254201234567},
        "summary": None,
        "workExperience": None,
        "countryWorkExperience": ["Kenya", " Kenya ", "", "Uganda"],
    })

    assert cv.personal_info.name == ""
    assert cv.personal_info.phone == "254201234567"
    assert cv.summary == ""
    assert cv.work_experience == []
    assert cv.country_work_experience == ["Kenya", "Uganda"]


def test_work_experience_alternate_spellings_filled():
    per_entry = WorkExperienceItem.model_validate({"dates": "2020", "role": "Lead", "client": "UNDP"})
    whole_doc = WorkExperienceItem.model_validate({"startDate": "2018", "endDate": "Present",
                                                   "position": "Analyst", "company": "WFP"})

    assert (per_entry.position, per_entry.company) == ("Lead", "UNDP")
    assert (whole_doc.role, whole_doc.client, whole_doc.dates) == ("Analyst", "WFP", "2018 - Present")


def test_responsibilities_accept_string_or_list():
    item = WorkExperienceItem.model_validate({"responsibilities": "Single duty", "achievements": ["A", None, ""]})

    assert item.responsibilities == ["Single duty"]
    assert item.achievements == ["A"]


def test_education_year_and_graduation_date_mirror():
    assert EducationItem(graduation_date="2012").year == "2012"
    assert EducationItem(year="2010").graduation_date == "2010"


def test_publication_authors_from_comma_string():
    assert PublicationItem.model_validate({"authors": "Doe, Smith ,"}).authors == ["Doe", "Smith"]


def test_dump_by_alias_uses_camel_case():
    payload = StructuredCV(work_experience=[WorkExperienceItem(start_date="2019")]).model_dump(by_alias=True)

    assert "personalInfo" in payload
    assert "countryWorkExperience" in payload
    assert payload["workExperience"][0]["startDate"] == "2019"


def test_fallback_record_is_fully_populated():
    cv = build_fallback_cv("timeout")

    assert cv.personal_info.name == EXTRACTION_FAILED
    assert "timeout" in cv.summary
    assert cv.work_experience and cv.education and cv.publications and cv.languages
    assert cv.country_work_experience == ["Extraction failed"]


def test_section_map_with_preamble_puts_header_first():
    sm = SectionMap(sections={"Profile": "x", "header": "Jane"}, strategy="plain_text", segmented=True)
    merged = sm.with_preamble("Page header")

    assert merged.names()[0] == "header"
    assert merged.get("header") == "Page header\nJane"
    assert merged.segmented is True
    assert sm.get("header") == "Jane"
