from cvtransformer.schemas.cv import (
    EducationItem,
    LanguageItem,
    PersonalInfo,
    PublicationItem,
    StructuredCV,
    WorkExperienceItem,
)
from cvtransformer.services.cv.chunking import estimate_tokens, merge_partial_records, split_into_chunks


def test_estimate_tokens_four_chars_per_token():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_short_text_is_one_chunk():
    assert split_into_chunks("Short CV.", max_tokens=100) == ["Short CV."]


def test_chunks_respect_budget_and_keep_all_text():
    text = " ".join(f"Sentence number {i} describes a role." for i in range(200))
    chunks = split_into_chunks(text, max_tokens=50)

    assert len(chunks) > 1
    assert all(len(c) <= 200 for c in chunks)
    assert "".join(c.replace(" ", "") for c in chunks) == text.replace(" ", "")


def test_breaks_at_sentence_boundary_past_halfway():
    first = "A" * 120 + "."
    text = first + " " + "B" * 150
    chunks = split_into_chunks(text, max_tokens=50)  # 200 chars

    assert chunks[0] == first
    assert chunks[1] == "B" * 150


def test_hard_split_when_no_boundary_past_halfway():
    text = "Hi. " + "x" * 400
    chunks = split_into_chunks(text, max_tokens=50)

    assert len(chunks[0]) == 200
    assert chunks[0].startswith("Hi. ")


def test_paragraph_break_used_as_boundary():
    para1 = "word " * 30
    text = para1.strip() + "\n\n" + "next " * 40
    chunks = split_into_chunks(text, max_tokens=50)

    assert chunks[0] == para1.strip()


def _record(n: int, **kwargs) -> StructuredCV:
    return StructuredCV(
        work_experience=[WorkExperienceItem(role=f"Role {n}-{i}") for i in range(n)],
        education=[EducationItem(degree=f"Degree {n}")],
        publications=[PublicationItem(citation=f"Paper {n}")],
        **kwargs,
    )


def test_merge_concatenates_arrays_in_order():
    records = [_record(2), _record(3), _record(1)]
    merged = merge_partial_records(records)

    assert len(merged.work_experience) == 6
    assert [e.role for e in merged.work_experience][:2] == ["Role 2-0", "Role 2-1"]
    assert len(merged.education) == 3
    assert len(merged.publications) == 3


def test_merge_scalars_first_non_empty_and_longest_summary():
    records = [
        StructuredCV(personal_info=PersonalInfo(email="a@x.org"), summary="Short."),
        StructuredCV(personal_info=PersonalInfo(name="Jane Doe", email="b@x.org"),
                     summary="A much longer summary paragraph."),
        StructuredCV(personal_info=PersonalInfo(name="J. Doe"), summary="Mid length text"),
    ]
    merged = merge_partial_records(records)

    assert merged.personal_info.name == "Jane Doe"
    assert merged.personal_info.email == "a@x.org"
    assert merged.summary == "A much longer summary paragraph."


def test_merge_deduplicates_exact_languages_only():
    english = LanguageItem(language="English", proficiency="Native")
    records = [
        StructuredCV(languages=[english, LanguageItem(language="French", proficiency="Fluent")]),
        StructuredCV(languages=[LanguageItem(language="English", proficiency="Native"),
                                LanguageItem(language="French", proficiency="Basic")]),
    ]
    merged = merge_partial_records(records)

    assert [(l.language, l.proficiency) for l in merged.languages] == [
        ("English", "Native"), ("French", "Fluent"), ("French", "Basic"),
    ]


def test_merge_does_not_mutate_inputs():
    first = _record(1, summary="One")
    second = _record(1, summary="Two two")
    before = (first.model_dump(), second.model_dump())

    merged = merge_partial_records([first, second])
    merged.work_experience[0].role = "changed"

    assert (first.model_dump(), second.model_dump()) == before


def test_merge_of_nothing_is_empty_record():
    merged = merge_partial_records([])

    assert merged == StructuredCV()
