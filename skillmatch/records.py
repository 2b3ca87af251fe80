"""
Typed CV records.

Each entity knows how to copy itself and how to convert to and from the
camelCase dict form that is persisted and shown to the model.  ``from_dict``
treats its input as untrusted: missing keys become "" and non-string values
are coerced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _items(value: Any) -> list:
    return value if isinstance(value, list) else []


@dataclass
class Experience:
    job_title: str = ""
    company: str = ""
    description: str = ""
    years: str = ""

    def copy(self) -> "Experience":
        return Experience(self.job_title, self.company, self.description, self.years)

    def to_dict(self) -> Dict[str, str]:
        return {
            "jobTitle": self.job_title,
            "company": self.company,
            "description": self.description,
            "years": self.years,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Experience":
        data = data if isinstance(data, dict) else {}
        return cls(
            job_title=_text(data.get("jobTitle")),
            company=_text(data.get("company")),
            description=_text(data.get("description")),
            years=_text(data.get("years")),
        )


@dataclass
class Education:
    degree_field: str = ""
    school: str = ""

    def copy(self) -> "Education":
        return Education(self.degree_field, self.school)

    def to_dict(self) -> Dict[str, str]:
        return {"degreeField": self.degree_field, "school": self.school}

    @classmethod
    def from_dict(cls, data: Any) -> "Education":
        data = data if isinstance(data, dict) else {}
        return cls(
            degree_field=_text(data.get("degreeField")),
            school=_text(data.get("school")),
        )


@dataclass
class Certification:
    title: str = ""

    def copy(self) -> "Certification":
        return Certification(self.title)

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title}

    @classmethod
    def from_dict(cls, data: Any) -> "Certification":
        if isinstance(data, str):
            return cls(title=data)
        data = data if isinstance(data, dict) else {}
        return cls(title=_text(data.get("title")))


@dataclass
class Skill:
    title: str = ""

    def copy(self) -> "Skill":
        return Skill(self.title)

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title}

    @classmethod
    def from_dict(cls, data: Any) -> "Skill":
        if isinstance(data, str):
            return cls(title=data)
        data = data if isinstance(data, dict) else {}
        return cls(title=_text(data.get("title")))


ITEM_TYPES = {
    "experience": Experience,
    "education": Education,
    "certifications": Certification,
    "skills": Skill,
}


@dataclass
class Record:
    """One uploaded CV, keyed by its source file name."""

    name: str
    experience: List[Experience] = field(default_factory=list)
    education: List[Education] = field(default_factory=list)
    certifications: List[Certification] = field(default_factory=list)
    skills: List[Skill] = field(default_factory=list)

    def copy(self) -> "Record":
        return Record(
            name=self.name,
            experience=[e.copy() for e in self.experience],
            education=[e.copy() for e in self.education],
            certifications=[c.copy() for c in self.certifications],
            skills=[s.copy() for s in self.skills],
        )

    def section(self, key: str) -> list:
        if key not in ITEM_TYPES:
            raise KeyError(f"Unknown section: {key}")
        return getattr(self, key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "experience": [e.to_dict() for e in self.experience],
            "education": [e.to_dict() for e in self.education],
            "certifications": [c.to_dict() for c in self.certifications],
            "skills": [s.to_dict() for s in self.skills],
        }

    @classmethod
    def from_dict(cls, data: Any, name: str | None = None) -> "Record":
        data = data if isinstance(data, dict) else {}
        return cls(
            name=name if name is not None else _text(data.get("name")),
            experience=[Experience.from_dict(x) for x in _items(data.get("experience"))],
            education=[Education.from_dict(x) for x in _items(data.get("education"))],
            certifications=[
                Certification.from_dict(x) for x in _items(data.get("certifications"))
            ],
            skills=[Skill.from_dict(x) for x in _items(data.get("skills"))],
        )
