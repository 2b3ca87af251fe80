# canonical structuring schema (empty lists – no placeholders)
CV_SCHEMA = {
    "experience": [
        {"jobTitle": "", "company": "", "period": "", "description": ""}
    ],
    "education": [{"degree": "", "major": "", "school": ""}],
    "certifications": [{"title": "", "issuer": "", "year": ""}],
    "skills": [""],
}

SECTION_KEYS = ("experience", "education", "certifications", "skills")

# editor layout per section: (field tag, placeholder, multiline)
SECTION_FIELDS = {
    "experience": (
        ("jobTitle", "Job Title", False),
        ("company", "Company Name", False),
        ("description", "Description", True),
        ("years", "Years", False),
    ),
    "education": (
        ("degreeField", "Degree and Field of study", False),
        ("school", "School", False),
    ),
    "certifications": (("title", "Certification", False),),
    "skills": (("title", "Skill", False),),
}

SECTION_LABELS = {
    "experience": "Experience",
    "education": "Education",
    "certifications": "Certifications",
    "skills": "Skills",
}
