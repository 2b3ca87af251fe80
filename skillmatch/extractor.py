"""
CV file ➜ raw text
– PDF via pdfplumber, plain text read as UTF-8
– strips `(cid:N)` glyph artifacts
– suppresses verbose CropBox warnings from pdfplumber/pdfminer
"""
from __future__ import annotations
from pathlib import Path
import re, logging, warnings, pdfplumber

from .errors import ExtractionError

# silence noisy PDF logging
logging.getLogger("pdfplumber").setLevel(logging.ERROR)
logging.getLogger("pdfminer").setLevel(logging.ERROR)
warnings.filterwarnings("ignore", category=UserWarning, module="pdfminer")

_CID_RE = re.compile(r"\(cid:\d+\)")
TEXT_SUFFIXES = {".txt", ".md", ".text"}
SUPPORTED_SUFFIXES = {".pdf"} | TEXT_SUFFIXES


def pdf_to_text(pdf_path: str | Path) -> str:
    with pdfplumber.open(pdf_path) as pdf:
        pages = [p.extract_text() or "" for p in pdf.pages]
    return _CID_RE.sub("", "\n".join(pages))


def extract_text(path: str | Path, filename: str | None = None) -> str:
    """Text of one uploaded CV; ``filename`` decides the type when given."""
    path = Path(path)
    name = filename or path.name
    suffix = Path(name).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ExtractionError(f"Unsupported file type: {suffix or 'none'}", filename=name)

    try:
        if suffix == ".pdf":
            text = pdf_to_text(path)
        else:
            text = path.read_text(encoding="utf-8", errors="replace")
    except Exception as exc:
        raise ExtractionError(f"Could not read {name}: {exc}", filename=name) from exc

    if not text.strip():
        raise ExtractionError(f"No text found in {name}", filename=name)
    return text
