"""
Editable views of CV records and the synchronisation points between them.

``render`` turns a Record into a ViewHandle: per section, an ordered list of
rows, each row holding tagged inputs.  The UI mutates the handle (edit, add,
delete rows) and ``capture`` reads it back into a fresh Record.  Nothing here
touches widgets directly, so the same code backs the Streamlit editor and
the tests.

``EditorSession`` is the per-user context that owns the drafts being
reviewed, the active index and the submitted set.  It captures the active
view before every switch and before submission; skipping that step is what
loses edits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .cleaner import format_description_as_bullets
from .record_store import RecordStore, deep_clone, upsert_by_name
from .records import ITEM_TYPES, Record
from .schema_cv import SECTION_FIELDS, SECTION_KEYS

log = logging.getLogger(__name__)


@dataclass
class Input:
    field: str
    value: str = ""
    placeholder: str = ""
    multiline: bool = False

    @property
    def key(self) -> str:
        """Field tag, falling back to the lower-cased placeholder."""
        return self.field or self.placeholder.lower()


@dataclass
class Row:
    inputs: List[Input] = field(default_factory=list)

    def values(self) -> Dict[str, str]:
        return {i.key: i.value for i in self.inputs}


@dataclass
class ViewHandle:
    record_name: str
    sections: Dict[str, List[Row]] = field(default_factory=dict)

    def rows(self, section: str) -> List[Row]:
        return self.sections.setdefault(section, [])

    def add_row(self, section: str) -> Row:
        row = _blank_row(section)
        self.rows(section).append(row)
        return row

    def delete_row(self, section: str, index: int) -> None:
        del self.rows(section)[index]

    def set_value(self, section: str, index: int, field_name: str, value: str) -> None:
        for inp in self.rows(section)[index].inputs:
            if inp.key == field_name:
                inp.value = value
                return
        raise KeyError(f"{section}[{index}] has no field {field_name!r}")


def _row_for(section: str, item: Dict[str, str]) -> Row:
    inputs = []
    for name, placeholder, multiline in SECTION_FIELDS[section]:
        value = item.get(name, "") or ""
        if name == "description":
            value = format_description_as_bullets(value)
        inputs.append(Input(name, value, placeholder, multiline))
    return Row(inputs)


def _blank_row(section: str) -> Row:
    return _row_for(section, {})


def render(record: Record) -> ViewHandle:
    view = ViewHandle(record_name=record.name)
    for section in SECTION_KEYS:
        view.sections[section] = [
            _row_for(section, item.to_dict()) for item in record.section(section)
        ]
    return view


def capture(active_record: Record, view: ViewHandle) -> Record:
    """Rebuild ``active_record`` from what is still present in ``view``."""
    if view.record_name != active_record.name:
        raise ValueError(
            f"View for {view.record_name!r} cannot be captured into {active_record.name!r}"
        )
    updated = Record(name=active_record.name)
    for section in SECTION_KEYS:
        item_type = ITEM_TYPES[section]
        setattr(
            updated,
            section,
            [item_type.from_dict(row.values()) for row in view.rows(section)],
        )
    return updated


class EditorSession:
    """Review state for one user: drafts, the active view and the submitted set."""

    def __init__(self, submitted: Iterable[Record] = ()):
        self.drafts = RecordStore()
        self.order: List[str] = []
        self.active_index = 0
        self.view: Optional[ViewHandle] = None
        self.submitted: List[Record] = [deep_clone(r) for r in submitted]

    # ── opening ──
    def open(self, records: Iterable[Record], index: int = 0) -> ViewHandle:
        self.drafts.clear()
        self.order = []
        for record in records:
            if record.name not in self.drafts:
                self.order.append(record.name)
            self.drafts.replace(record)
        if not self.order:
            self.view = None
            self.active_index = 0
            raise ValueError("No records to review")
        self.active_index = self._clamp(index)
        self.view = render(self.drafts.get(self.order[self.active_index]))
        return self.view

    def reopen_submitted(self, index: int = 0) -> ViewHandle:
        return self.open(self.submitted, index)

    @property
    def is_open(self) -> bool:
        return self.view is not None

    @property
    def active_record(self) -> Record:
        return self.drafts.get(self.order[self.active_index])

    # ── synchronisation points ──
    def capture_active(self) -> Record:
        if self.view is None:
            raise RuntimeError("Editor is not open")
        updated = capture(self.drafts.get(self.view.record_name), self.view)
        self.drafts.replace(updated)
        return updated

    def switch_to(self, index: int) -> ViewHandle:
        self.capture_active()
        self.active_index = self._clamp(index)
        self.view = render(self.drafts.get(self.order[self.active_index]))
        log.debug("Switched editor to %s", self.order[self.active_index])
        return self.view

    def submit(self) -> List[Record]:
        self.capture_active()
        drafts = [self.drafts.get(name) for name in self.order]
        self.submitted = upsert_by_name(self.submitted, drafts)
        log.info("Submitted %d CV(s); %d in saved set", len(drafts), len(self.submitted))
        return [deep_clone(r) for r in self.submitted]

    def delete_submitted(self, name: str) -> List[Record]:
        """Remove ``name`` from the submitted set and from the open drafts.

        A draft left behind would be upserted back by the next submit.
        """
        self.submitted = [deep_clone(r) for r in self.submitted if r.name != name]
        if name in self.drafts:
            self._drop_draft(name)
        return [deep_clone(r) for r in self.submitted]

    def close(self) -> None:
        self.view = None

    def _drop_draft(self, name: str) -> None:
        if self.view is not None and self.view.record_name != name:
            self.capture_active()
        active = self.order[self.active_index] if self.order else None
        self.drafts.remove(name)
        if name in self.order:
            self.order.remove(name)
        if not self.order:
            self.view = None
            self.active_index = 0
            return
        if active in self.order:
            self.active_index = self.order.index(active)
        else:
            self.active_index = min(self.active_index, len(self.order) - 1)
            if self.view is not None:
                self.view = render(self.drafts.get(self.order[self.active_index]))
        log.debug("Dropped draft %s", name)

    def _clamp(self, index: int) -> int:
        if not 0 <= index < len(self.order):
            raise IndexError(f"No record at index {index}")
        return index
