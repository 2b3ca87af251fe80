"""
Persisted local state.

Each value lives under a fixed key as one JSON file in the data directory and
is overwritten in full on every save.  Loads never raise: a missing or
corrupt file is logged and the default is returned.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config
from .records import Record

log = logging.getLogger(__name__)

CHAT_HISTORY_KEY = "skillMatchChatHistory"
USER_RULES_KEY = "skillMatchUserRules"
LAST_RECOMMENDATIONS_KEY = "skillMatchLastRecommendations"
SUBMITTED_CVS_KEY = "skillMatchSubmittedCvs"


class LocalStore:
    def __init__(self, root: Path | str | None = None):
        self.root = Path(root) if root is not None else config.DATA_DIR

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def save(self, key: str, value: Any) -> bool:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self._path(key).write_text(
                json.dumps(value, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            return True
        except (OSError, TypeError, ValueError) as exc:
            log.error("Failed to save %s: %s", key, exc)
            return False

    def load(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.error("Failed to parse %s: %s", key, exc)
            return default

    # ── chat transcript ──
    def save_chat_history(self, messages: List[Dict[str, Any]]) -> bool:
        return self.save(CHAT_HISTORY_KEY, messages)

    def load_chat_history(self) -> List[Dict[str, Any]]:
        data = self.load(CHAT_HISTORY_KEY, [])
        if not isinstance(data, list):
            return []
        return [
            {"text": str(m.get("text", "")), "isUser": bool(m.get("isUser"))}
            for m in data
            if isinstance(m, dict)
        ]

    def clear_chat_history(self) -> bool:
        return self.save_chat_history([])

    # ── rules ──
    def save_user_rules(self, rules: List[str]) -> bool:
        return self.save(USER_RULES_KEY, rules)

    def load_user_rules(self, default: Optional[List[str]] = None) -> List[str]:
        data = self.load(USER_RULES_KEY)
        if isinstance(data, list) and data:
            return [str(r) for r in data]
        return list(default or [])

    # ── recommendations ──
    def save_last_recommendations(self, recommendations: Any) -> bool:
        return self.save(LAST_RECOMMENDATIONS_KEY, recommendations)

    def load_last_recommendations(self) -> Any:
        return self.load(LAST_RECOMMENDATIONS_KEY)

    # ── submitted CVs ──
    def save_submitted(self, records: List[Record]) -> bool:
        return self.save(SUBMITTED_CVS_KEY, [r.to_dict() for r in records])

    def load_submitted(self) -> List[Record]:
        data = self.load(SUBMITTED_CVS_KEY, [])
        if not isinstance(data, list):
            return []
        return [Record.from_dict(d) for d in data if isinstance(d, dict) and d.get("name")]
