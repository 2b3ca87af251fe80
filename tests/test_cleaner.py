from datetime import date

import pytest

from skillmatch.cleaner import (
    format_description_as_bullets,
    record_from_structured,
    smart_split,
    total_experience,
    years_from_period,
)
from skillmatch.records import Experience, Skill

TODAY = date(2024, 6, 1)


def test_description_becomes_one_bullet_per_sentence():
    text = "Designed services. Mentored juniors.  Shipped v2."
    assert format_description_as_bullets(text) == "• Designed services\n• Mentored juniors\n• Shipped v2"


def test_description_keeps_existing_lines_and_strips_old_bullets():
    text = "- Ran ops\n• Cut costs by 3.5%"
    assert format_description_as_bullets(text) == "• Ran ops\n• Cut costs by 3.5%"


def test_empty_description():
    assert format_description_as_bullets("") == ""


@pytest.mark.parametrize("period, years", [
    ("2018 - 2021", 3.0),
    ("2019 - Present", 5.0),
    ("Jan 2020 – current", 4.0),
    ("5 years", 5.0),
    ("2.5 yrs", 2.5),
    ("2017", 0.0),
    ("", 0.0),
    ("2022 - 2020", 0.0),
])
def test_years_from_period(period, years):
    assert years_from_period(period, TODAY) == years


def test_total_experience_sums_roles():
    items = [Experience(years="2018 - 2021"), Experience(years="2021 - Present"), Experience()]
    assert total_experience(items, TODAY) == 6.0


def test_smart_split():
    assert smart_split("python, sql; go\nrust") == ["python", "sql", "go", "rust"]


def test_record_from_structured_maps_model_output():
    data = {
        "experience": [
            {"jobTitle": "Dev", "company": "Acme", "period": "2019 - 2021", "description": "Built it."},
            {"title": "Ops", "companyName": "Beta", "dates": "2021"},
            {"description": "orphan text"},
        ],
        "education": [{"degree": "BSc", "major": "Physics", "school": "ETH"}, {"degree": "", "school": ""}],
        "certifications": [{"title": "CKA", "issuer": "CNCF", "year": "2022"}, "PMP", {"title": ""}],
        "skills": ["python", {"title": "sql"}, "", 3],
    }
    record = record_from_structured("cv.pdf", data)

    assert record.name == "cv.pdf"
    assert [(e.job_title, e.company, e.years) for e in record.experience] == [
        ("Dev", "Acme", "2019 - 2021"),
        ("Ops", "Beta", "2021"),
    ]
    assert [(e.degree_field, e.school) for e in record.education] == [("BSc in Physics", "ETH")]
    assert [c.title for c in record.certifications] == ["CKA - CNCF (2022)", "PMP"]
    assert record.skills == [Skill("python"), Skill("sql"), Skill("3")]


def test_record_from_structured_tolerates_garbage():
    record = record_from_structured("x.txt", {"experience": "nope", "skills": "a, b"})
    assert record.experience == []
    assert [s.title for s in record.skills] == ["a", "b"]
    assert record_from_structured("y.txt", None).name == "y.txt"
