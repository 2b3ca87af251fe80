from skillmatch.records import Record, Skill
from skillmatch.storage import SUBMITTED_CVS_KEY, LocalStore


def test_submitted_records_survive_a_reload(tmp_path):
    store = LocalStore(tmp_path)
    records = [Record("a.pdf", skills=[Skill("python")]), Record("b.pdf")]
    assert store.save_submitted(records)
    assert LocalStore(tmp_path).load_submitted() == records


def test_missing_values_fall_back_to_defaults(tmp_path):
    store = LocalStore(tmp_path / "fresh")
    assert store.load_chat_history() == []
    assert store.load_submitted() == []
    assert store.load_last_recommendations() is None
    assert store.load_user_rules(["default"]) == ["default"]


def test_corrupt_file_is_logged_not_raised(tmp_path, caplog):
    (tmp_path / f"{SUBMITTED_CVS_KEY}.json").write_text("{broken", encoding="utf-8")
    assert LocalStore(tmp_path).load_submitted() == []
    assert "Failed to parse" in caplog.text


def test_rules_and_recommendations_round_trip(tmp_path):
    store = LocalStore(tmp_path)
    store.save_user_rules(["r1", "r2"])
    recs = [{"candidateName": "a.pdf", "recommendations": []}]
    store.save_last_recommendations(recs)
    assert store.load_user_rules() == ["r1", "r2"]
    assert store.load_last_recommendations() == recs


def test_chat_history_is_sanitised(tmp_path):
    store = LocalStore(tmp_path)
    store.save_chat_history([{"text": "hi", "isUser": 1}, "junk", {"isUser": False}])
    assert store.load_chat_history() == [
        {"text": "hi", "isUser": True},
        {"text": "", "isUser": False},
    ]
