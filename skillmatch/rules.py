"""
Free-text recommendation rules ➜ rule list via the LLM.
"""
from __future__ import annotations

import json
import logging
import re
from typing import List

from . import llm_client
from .errors import UpstreamError
from .prompts import rules_system_prompt
from .utils import clip

log = logging.getLogger(__name__)

DEFAULT_RULES = [
    "Recommend only certifications that match the candidate's current skills or the next step in their career.",
    "Respect the minimum years of experience a certification expects.",
    "Prefer foundational certifications for candidates with less than two years of experience.",
]

_ARRAY_FINDER = re.compile(r"\[.*\]", re.S)


def _parse_rule_list(raw: str) -> List[str]:
    payload = raw.strip().strip("`")
    if payload.lower().startswith("json"):
        payload = payload[4:]
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        m = _ARRAY_FINDER.search(payload)
        if not m:
            raise
        data = json.loads(m.group())
    if not isinstance(data, list):
        raise ValueError("rule list is not a JSON array")
    return [str(r).strip() for r in data if str(r).strip()]


async def parse_rules(rules_text: str) -> List[str]:
    if not rules_text.strip():
        raise ValueError("No rules given")
    reply = await llm_client.complete(rules_text, [], rules_system_prompt())
    try:
        rules = _parse_rule_list(reply)
    except ValueError as exc:
        log.error("Rules reply could not be parsed: %s", clip(reply))
        raise UpstreamError("The model did not return a usable rule list") from exc
    if not rules:
        raise UpstreamError("The model returned no rules")
    log.info("Parsed %d rules", len(rules))
    return rules
