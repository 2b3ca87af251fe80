"""
In-memory store of CV records keyed by file name.

Reads hand out clones so an edit surface never aliases what is stored, and
``upsert_by_name`` merges two record lists without touching either input.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .records import Record

log = logging.getLogger(__name__)


def deep_clone(record: Record) -> Record:
    """Structural copy sharing no mutable sub-objects with ``record``."""
    return record.copy()


def upsert_by_name(existing: Iterable[Record], incoming: Iterable[Record]) -> List[Record]:
    """Merge ``incoming`` into ``existing`` keyed by record name.

    A name present in both is replaced wholesale by the incoming record (no
    field-level merge).  Order follows first appearance; a repeated name
    keeps its first position and its last value.
    """
    merged: Dict[str, Record] = {}
    for record in list(existing) + list(incoming):
        merged[record.name] = deep_clone(record)
    return list(merged.values())


class RecordStore:
    def __init__(self, records: Iterable[Record] = ()):
        self._records: Dict[str, Record] = {}
        for record in records:
            self.replace(record)

    def load(self, name: str, data: Record | dict) -> Record:
        """Insert or replace the record stored under ``name``."""
        if isinstance(data, Record):
            record = deep_clone(data)
            record.name = name
        else:
            record = Record.from_dict(data, name=name)
        if name in self._records:
            log.info("Replacing record %s", name)
        self._records[name] = record
        return deep_clone(record)

    def replace(self, record: Record) -> None:
        self._records[record.name] = deep_clone(record)

    def get(self, name: str) -> Record:
        return deep_clone(self._records[name])

    def remove(self, name: str) -> None:
        self._records.pop(name, None)

    def clear(self) -> None:
        self._records.clear()

    def names(self) -> List[str]:
        return list(self._records)

    def records(self) -> List[Record]:
        return [deep_clone(r) for r in self._records.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)
