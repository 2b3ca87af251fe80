"""
Certification recommendations for the submitted CVs.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config, llm_client
from .errors import UpstreamError
from .prompts import build_analysis_prompt
from .records import Record
from .utils import clip

log = logging.getLogger(__name__)

_ARRAY_FINDER = re.compile(r"\[.*\]", re.S)


def load_catalog(path: str | Path | None = None) -> List[Dict[str, Any]]:
    """Certificate catalog from a JSON file: a list of {name, description, ...}."""
    path = path or config.CATALOG_PATH
    if not path:
        return []
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.error("Failed to load certificate catalog %s: %s", path, exc)
        return []
    if not isinstance(data, list):
        log.error("Certificate catalog %s is not a list", path)
        return []
    return [c for c in data if isinstance(c, dict) and c.get("name")]


def _normalise(data: Any) -> List[Dict[str, Any]]:
    out = []
    for cand in data if isinstance(data, list) else []:
        if not isinstance(cand, dict):
            continue
        recs = []
        for rec in cand.get("recommendations") or []:
            if not isinstance(rec, dict) or not rec.get("certName"):
                continue
            applied = rec.get("rulesApplied") or []
            recs.append({
                "certName": str(rec["certName"]),
                "reason": str(rec.get("reason", "")),
                "rulesApplied": [str(r) for r in applied] if isinstance(applied, list) else [str(applied)],
            })
        out.append({"candidateName": str(cand.get("candidateName", "")), "recommendations": recs})
    return out


async def analyze_cvs(
    records: List[Record],
    rules: List[str],
    catalog: Optional[List[Dict[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    if not records:
        return []
    prompt = build_analysis_prompt(records, rules, catalog or [])
    reply = await llm_client.complete(prompt, [], "")
    payload = reply.strip().strip("`")
    if payload.lower().startswith("json"):
        payload = payload[4:]
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        m = _ARRAY_FINDER.search(payload)
        try:
            data = json.loads(m.group()) if m else None
        except json.JSONDecodeError:
            data = None
    if data is None:
        log.error("Recommendation reply is not JSON: %s", clip(reply))
        raise UpstreamError("The model did not return recommendations in the expected format")
    return _normalise(data)
