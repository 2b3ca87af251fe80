"""
Shared clean-ups and schema normalisation.

The structuring model's output is untrusted: any key may be missing, renamed
or of the wrong type.  ``record_from_structured`` maps it onto a Record.
"""
from __future__ import annotations
import re, unicodedata
from datetime import date
from typing import Any, Dict, List

from .records import Certification, Education, Experience, Record, Skill

_YEAR      = re.compile(r"\b(19|20)\d{2}\b")
_DURATION  = re.compile(r"(\d+(?:\.\d+)?)\s*(?:\+\s*)?(?:years?|yrs?)\b", re.I)
_ONGOING   = re.compile(r"\b(present|current|now|today|ongoing)\b", re.I)
_SENTENCE  = re.compile(r"\.\s+")
_BULLET    = re.compile(r"^[\s•\-]+")

# ───────────────────────────────────────── helpers ──
def smart_split(text: str) -> List[str]:
    return [t for t in re.split(r"\s*[,;\n]\s*", unicodedata.normalize("NFKC", text).strip()) if t]

def _text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value).strip()

def _first(d: Dict[str, Any], *keys: str) -> str:
    for k in keys:
        if v := _text(d.get(k)):
            return v
    return ""

def _items(value: Any) -> list:
    return value if isinstance(value, list) else []

def format_description_as_bullets(text: str) -> str:
    """Turn a description into one `• sentence` line per sentence."""
    if not text:
        return ""
    with_breaks = _SENTENCE.sub(".\n", text.replace("\r", ""))
    sentences = []
    for part in re.split(r"\n+", with_breaks):
        cleaned = _BULLET.sub("", part).strip().rstrip(".").strip()
        if cleaned:
            sentences.append(cleaned)
    if not sentences:
        return text.strip()
    return "\n".join(f"• {s}" for s in sentences)

# ───────────────────────────────────────── experience arithmetic ──
def years_from_period(period: str, today: date | None = None) -> float:
    """'2018 - 2021' → 3, '2019 - Present' → years since 2019, '5 years' → 5."""
    period = period or ""
    if m := _DURATION.search(period):
        return float(m.group(1))
    years = [int(m.group()) for m in _YEAR.finditer(period)]
    if not years:
        return 0.0
    start = years[0]
    if len(years) > 1:
        end = years[-1]
    elif _ONGOING.search(period):
        end = (today or date.today()).year
    else:
        return 0.0
    return float(max(end - start, 0))

def total_experience(items: List[Experience], today: date | None = None) -> float:
    return round(sum(years_from_period(i.years, today) for i in items), 1)

# ───────────────────────────────────────── cleaner ──
def _experience(e: Any) -> Experience:
    e = e if isinstance(e, dict) else {}
    return Experience(
        job_title=_first(e, "jobTitle", "title", "position"),
        company=_first(e, "company", "companyName"),
        description=_text(e.get("description")),
        years=_first(e, "period", "years", "dates"),
    )

def _education(e: Any) -> Education:
    e = e if isinstance(e, dict) else {}
    degree = _first(e, "degree", "title")
    major = _first(e, "major", "fieldOfStudy")
    if degree:
        degree_field = f"{degree} in {major}" if major else degree
    else:
        degree_field = major
    return Education(degree_field=degree_field, school=_first(e, "school", "institution"))

def _certification(c: Any) -> Certification:
    if isinstance(c, str):
        return Certification(title=c.strip())
    c = c if isinstance(c, dict) else {}
    title = _text(c.get("title"))
    if issuer := _text(c.get("issuer")):
        title += f" - {issuer}"
    if year := _text(c.get("year")):
        title += f" ({year})"
    return Certification(title=title)

def _skills(raw: Any) -> List[Skill]:
    if isinstance(raw, str):
        return [Skill(title=t) for t in smart_split(raw)]
    out = []
    for s in _items(raw):
        title = s.get("title") if isinstance(s, dict) else s
        if title := _text(title):
            out.append(Skill(title=title))
    return out

def record_from_structured(name: str, data: Any) -> Record:
    r = data if isinstance(data, dict) else {}
    record = Record(
        name=name,
        experience=[_experience(e) for e in _items(r.get("experience"))],
        education=[_education(e) for e in _items(r.get("education"))],
        certifications=[_certification(c) for c in _items(r.get("certifications"))],
        skills=_skills(r.get("skills")),
    )
    # purge empties
    record.experience = [j for j in record.experience if j.job_title or j.company]
    record.education = [e for e in record.education if e.degree_field or e.school]
    record.certifications = [c for c in record.certifications if c.title]
    return record
