"""
Prompt assembly for chat, CV parsing, rules and recommendations.

Templates live in ``templates/`` and are rendered with Jinja2.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader

from .cleaner import total_experience
from .records import Record
from .schema_cv import CV_SCHEMA

env = Environment(loader=FileSystemLoader(Path(__file__).parent / "templates"),
                  autoescape=False, trim_blocks=True, lstrip_blocks=True,
                  keep_trailing_newline=False)

# a message that mentions any of these gets the CV summary attached
_CV_CONTEXT_HINTS = ("my", "i have", "i am", "experience", "skill", "certification", "recommend")


def _render(name: str, **ctx: Any) -> str:
    return env.get_template(name).render(**ctx).strip()


def _years(value: float) -> str:
    return f"{value:g}"


def cv_summary(record: Record) -> Dict[str, str]:
    return {
        "name": record.name,
        "years": _years(total_experience(record.experience)),
        "roles": ", ".join(e.job_title for e in record.experience[:3] if e.job_title),
        "skills": ", ".join(s.title for s in record.skills[:10] if s.title),
    }


def build_chat_system_prompt(records: Iterable[Record] = (), catalog: Optional[List[dict]] = None) -> str:
    return _render(
        "chat_system.j2",
        cvs=[cv_summary(r) for r in records],
        catalog=catalog or [],
    )


def wants_cv_context(message: str) -> bool:
    lower = message.lower()
    return any(hint in lower for hint in _CV_CONTEXT_HINTS)


def build_chat_message(
    message: str,
    records: Iterable[Record] = (),
    rules: Optional[List[str]] = None,
    last_recommendations: Any = None,
) -> str:
    """The user message plus CV, rule and recommendation context."""
    records = list(records)
    summary = ""
    if records and wants_cv_context(message):
        summary = "\n".join(
            f"{s['name']}: {s['years']} years experience, "
            f"recent roles: {s['roles'] or 'N/A'}, skills: {s['skills'] or 'N/A'}"
            for s in map(cv_summary, records)
        )
    recommendations = ""
    if last_recommendations:
        recommendations = json.dumps(last_recommendations, ensure_ascii=False)
    return _render(
        "chat_context.j2",
        message=message,
        cv_count=len(records),
        cv_summary=summary,
        rules=rules or [],
        recommendations=recommendations,
    )


def build_cv_text(record: Record) -> str:
    """Plain-text rendering of a record, used as model input."""
    jobs = []
    for exp in record.experience:
        lines = []
        if exp.job_title or exp.company:
            lines.append(f"{exp.job_title or 'Role'} at {exp.company}".strip())
        if exp.years:
            lines.append(exp.years)
        if exp.description:
            lines.append(exp.description)
        if lines:
            jobs.append("\n".join(lines))

    degrees = ["\n".join(x for x in (e.degree_field, e.school) if x) for e in record.education]
    degrees = [d for d in degrees if d]
    certs = [c.title for c in record.certifications if c.title]
    skills = [s.title for s in record.skills if s.title]

    parts = []
    if jobs:
        parts.append("Experience:\n" + "\n\n".join(jobs))
    if degrees:
        parts.append("Education:\n" + "\n\n".join(degrees))
    if certs:
        parts.append("Certifications:\n" + "\n".join(certs))
    if skills:
        parts.append("Skills:\n" + ", ".join(skills))
    return "\n\n".join(parts)


def cv_parser_system_prompt() -> str:
    return _render("cv_parser.j2", schema=json.dumps(CV_SCHEMA, indent=2))


def rules_system_prompt() -> str:
    return _render("rules.j2")


def build_analysis_prompt(records: Iterable[Record], rules: List[str], catalog: List[dict]) -> str:
    cvs = [
        {**cv_summary(r), "text": build_cv_text(r) or "(empty CV)"}
        for r in records
    ]
    return _render("analysis.j2", cvs=cvs, rules=rules, catalog=catalog)
