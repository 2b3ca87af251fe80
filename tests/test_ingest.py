import asyncio
from pathlib import Path

from skillmatch import config, llm_client
from skillmatch.errors import ExtractionError, StructuringError
from skillmatch.ingest import Upload, ingest_files
from skillmatch.record_store import RecordStore
from skillmatch.view_sync import EditorSession


def _fake_extract(path, name):
    if name.endswith(".doc"):
        raise ExtractionError("Unsupported file type: .doc", filename=name)
    return f"text of {name}"


async def _fake_structure(text):
    if "broken" in text:
        raise StructuringError("Model did not return valid JSON for this CV")
    return {"skills": [text.split()[-1]]}


def _uploads(*names):
    return [Upload(n, Path("/tmp") / n) for n in names]


def test_all_files_loaded_in_order():
    store = RecordStore()
    result = asyncio.run(ingest_files(_uploads("a.pdf", "b.pdf"), store, _fake_extract, _fake_structure))
    assert result.ok
    assert result.loaded == ["a.pdf", "b.pdf"]
    assert store.names() == ["a.pdf", "b.pdf"]
    assert store.get("b.pdf").skills[0].title == "b.pdf"


def test_failure_stops_the_batch_and_keeps_earlier_files():
    store = RecordStore()
    uploads = _uploads("a.pdf", "broken.pdf", "c.pdf")
    result = asyncio.run(ingest_files(uploads, store, _fake_extract, _fake_structure))

    assert not result.ok
    assert result.loaded == ["a.pdf"]
    assert result.failed == ("broken.pdf", "Model did not return valid JSON for this CV")
    assert result.skipped == ["c.pdf"]
    assert store.names() == ["a.pdf"]


def test_extraction_failure_is_reported_by_file_name():
    result = asyncio.run(ingest_files(_uploads("cv.doc"), RecordStore(), _fake_extract, _fake_structure))
    assert result.failed[0] == "cv.doc"
    assert "Unsupported" in result.failed[1]


def test_deleting_a_row_survives_a_tab_switch():
    async def structure(text):
        if "resume.pdf" in text:
            return {"experience": [
                {"jobTitle": "Engineer", "company": "Acme", "period": "2019 - 2021"},
                {"jobTitle": "Intern", "company": "Beta", "period": "2018"},
            ]}
        return {"skills": ["go"]}

    store = RecordStore()
    asyncio.run(ingest_files(_uploads("resume.pdf", "second.pdf"), store, _fake_extract, structure))

    editor = EditorSession()
    editor.open(store.records())
    editor.view.delete_row("experience", 0)
    editor.switch_to(1)
    editor.switch_to(0)

    assert editor.view.record_name == "resume.pdf"
    assert len(editor.active_record.experience) == 1
    assert editor.active_record.experience[0].job_title == "Intern"


def test_misconfigured_provider_is_reported_per_file(monkeypatch, tmp_path):
    monkeypatch.setattr(llm_client, "_llm_client", None)
    monkeypatch.setattr(config, "LLM_PROVIDER", "openai")
    monkeypatch.setattr(config, "OPENAI_API_KEY", None)
    monkeypatch.setattr(config, "CACHE_DIR", tmp_path / "cache")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    cv = tmp_path / "upload.tmp"
    cv.write_text("Jane Doe, Python developer", encoding="utf-8")

    store = RecordStore()
    result = asyncio.run(ingest_files([Upload("cv.txt", cv)], store))

    assert not result.ok
    assert result.failed[0] == "cv.txt"
    assert "OpenAI API key is required" in result.failed[1]
    assert len(store) == 0
