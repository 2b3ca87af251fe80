"""
LLM-based CV structurer.

• Works with any configured provider through llm_client.complete
• Caches responses in <CACHE_DIR>/<sha256>.json so the model is
  queried only once per unique CV text.
• Returns the raw structure; cleaner.record_from_structured normalises it.
"""

from __future__ import annotations
import json, logging, re
from pathlib import Path
from typing import Any, Dict

from . import config, llm_client
from .errors import CompletionError, StructuringError
from .prompts import cv_parser_system_prompt
from .utils import _sha, clip

log = logging.getLogger(__name__)

_JSON_FINDER = re.compile(r"\{.*\}", re.S)


def _extract_json(raw: str) -> dict:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        if m := _JSON_FINDER.search(raw):
            return json.loads(m.group())
        raise


async def structure_cv(raw_text: str, cache_dir: Path | None = None) -> Dict[str, Any]:
    cache_dir = cache_dir or config.CACHE_DIR
    cache_path = cache_dir / f"{_sha(raw_text)}.json"

    if cache_path.exists():
        try:
            return json.loads(cache_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("Ignoring unreadable cache entry %s: %s", cache_path.name, exc)

    try:
        reply = await llm_client.complete(raw_text, [], cv_parser_system_prompt())
    except CompletionError as exc:
        raise StructuringError(f"CV structuring call failed: {exc}") from exc

    payload = reply.strip().strip("`")
    if payload.lower().startswith("json"):
        payload = payload[4:]
    try:
        data = _extract_json(payload)
    except json.JSONDecodeError as exc:
        log.error("Structuring reply is not JSON: %s", clip(reply))
        raise StructuringError("Model did not return valid JSON for this CV") from exc
    if not isinstance(data, dict):
        raise StructuringError("Model returned JSON that is not an object")

    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        cache_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    except OSError as exc:
        log.warning("Could not cache structured CV: %s", exc)
    return data
