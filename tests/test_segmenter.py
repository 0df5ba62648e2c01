from cvtransformer.services.cv.segmenter import (
    HtmlStructureStrategy,
    PlainTextHeaderStrategy,
    segment_document,
)


def test_html_headings_segment_into_sections():
    html = "<h2>Profile</h2><p>Expert in X.</p><h2>Education</h2><p>BSc, 2010</p>"
    sm = segment_document("", html)

    assert sm.segmented is True
    assert sm.strategy == "html"
    assert sm.get("profile") == "Expert in X."
    assert sm.get("education") == "BSc, 2010"
    # header text itself is never part of the content
    assert "Profile" not in sm.get("profile")


def test_plain_text_fallback_finds_same_sections():
    sm = segment_document("Profile\nExpert.\nEducation\nBSc")

    assert sm.segmented is True
    assert sm.strategy == "plain_text"
    assert sm.get("Profile") == "Expert."
    assert sm.get("EDUCATION") == "BSc"


def test_html_without_enough_headers_falls_back_to_plain_text():
    # Only one recognisable header in the markup, but the text has two header lines
    html = "<p>Jane Doe</p><p>Profile</p>"
    text = "Jane Doe\nProfile\nEconomist.\nEducation\nMSc"
    sm = segment_document(text, html)

    assert sm.strategy == "plain_text"
    assert sm.get("header") == "Jane Doe"
    assert sm.get("education") == "MSc"


def test_single_header_is_not_segmented():
    sm = segment_document("Jane Doe\nProfile\nEconomist with a long career.")

    assert sm.segmented is False
    assert sm.strategy == "unsegmented"
    assert sm.names() == ["header"]
    assert "Economist" in sm.get("header")


def test_text_before_first_header_becomes_header_section():
    text = "Jane Doe\njane@example.org\n\nProfile\nEconomist.\n\nExperience\n2020 Lead"
    sm = segment_document(text)

    assert sm.get("header") == "Jane Doe\njane@example.org"
    assert sm.get("experience") == "2020 Lead"


def test_colon_and_indentation_tolerated_in_plain_text():
    text = "  Professional Summary:\nSeasoned analyst.\n\tWork Experience :\n2019 Analyst"
    sm = segment_document(text)

    assert sm.get("Professional Summary") == "Seasoned analyst."
    assert sm.get("Work Experience") == "2019 Analyst"


def test_header_word_inside_sentence_is_not_a_header():
    text = "Profile\nI have broad experience in education reform.\nPublications\nDoe 2019"
    sm = segment_document(text)

    assert sm.names() == ["Profile", "Publications"]
    assert "education reform" in sm.get("profile")


def test_bold_runs_detected_when_no_headings():
    html = (
        "<p><strong>Profile</strong></p><p>Economist.</p>"
        "<p><strong>Qualifications:</strong> MSc Economics, 2012</p>"
        "<p>A <strong>research</strong> focus on trade.</p>"
    )
    attempt = HtmlStructureStrategy().attempt("", html)

    assert attempt.succeeded
    assert attempt.headers_found == 2
    assert attempt.sections["Profile"] == "Economist."
    # text sharing the header's paragraph opens the section; the mid-sentence bold stays content
    assert attempt.sections["Qualifications"] == "MSc Economics, 2012\nA research focus on trade."


def test_short_paragraph_headers_detected():
    html = "<p>Jane Doe</p><p>Summary</p><p>Trade economist.</p><p>Education</p><p>PhD, 2015</p>"
    sm = segment_document("", html)

    assert sm.strategy == "html"
    assert sm.get("header") == "Jane Doe"
    assert sm.get("summary") == "Trade economist."
    assert sm.get("education") == "PhD, 2015"


def test_long_paragraph_containing_header_word_is_content():
    long_sentence = "Profile of a career spent on " + "development finance and policy " * 4
    html = f"<h2>Experience</h2><p>{long_sentence}</p><h2>Education</h2><p>MSc</p>"
    sm = segment_document("", html)

    assert sm.names() == ["Experience", "Education"]
    assert sm.get("experience").startswith("Profile of a career")


def test_duplicate_headers_are_concatenated_in_order():
    text = "Experience\n2020 First\nEducation\nBSc\nExperience\n2015 Second"
    sm = segment_document(text)

    assert sm.get("experience") == "2020 First\n\n2015 Second"


def test_plain_strategy_keeps_parenthetical_qualifier():
    attempt = PlainTextHeaderStrategy().attempt("Experience (selected)\n2020 A\nEducation\nBSc")

    assert "Experience (selected)" in attempt.sections
    assert attempt.sections["Experience (selected)"] == "2020 A"


def test_html_strategy_not_applicable_without_html():
    assert HtmlStructureStrategy().attempt("Profile\nX", None) is None
