"""
Sequential batch ingestion of uploaded CV files.

Each file is extracted, structured and loaded into the record store in turn.
The first DataError stops the batch; files loaded before it stay loaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from .cleaner import record_from_structured
from .errors import DataError
from .extractor import extract_text
from .parser_llm import structure_cv
from .record_store import RecordStore

log = logging.getLogger(__name__)

Extractor = Callable[[Path, str], str]
Structurer = Callable[[str], Awaitable[dict]]


@dataclass
class Upload:
    """One uploaded file: its original name and where its bytes were saved."""

    name: str
    path: Path


@dataclass
class IngestResult:
    loaded: List[str] = field(default_factory=list)
    failed: Optional[Tuple[str, str]] = None
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed is None


async def ingest_files(
    uploads: Iterable[Upload],
    store: RecordStore,
    extract: Extractor = extract_text,
    structure: Structurer = structure_cv,
) -> IngestResult:
    uploads = list(uploads)
    result = IngestResult()
    for position, upload in enumerate(uploads):
        try:
            text = extract(upload.path, upload.name)
            data = await structure(text)
        except DataError as exc:
            log.error("Failed to process %s: %s", upload.name, exc)
            result.failed = (upload.name, str(exc))
            result.skipped = [u.name for u in uploads[position + 1:]]
            break
        store.load(upload.name, record_from_structured(upload.name, data))
        result.loaded.append(upload.name)
        log.info("Structured %s", upload.name)
    return result
