import pytest
from sqlalchemy import text

from nestchat.core.exceptions import DatabaseError
from nestchat.database.connection import DatabaseConnection
from nestchat.database.repository import ChatRepository


@pytest.fixture
def repo():
    db = DatabaseConnection("sqlite://")
    repository = ChatRepository(db)
    repository.init_tables()
    yield repository
    db.close()


def test_save_message_returns_increasing_ids(repo):
    first = repo.save_message("u1", "user", "hello")
    second = repo.save_message("u1", "assistant", "hi there")
    assert second > first


def test_recent_messages_are_chronological(repo):
    for i in range(5):
        repo.save_message("u1", "user", f"message {i}")
    repo.save_message("u2", "user", "other user")

    recent = repo.get_recent_messages("u1", limit=3)
    assert [m.content for m in recent] == ["message 2", "message 3", "message 4"]


def test_fact_updates_are_monotonic(repo):
    repo.save_or_update_fact("u1", "pregnancy_week", "20", 0.8)
    kept = repo.save_or_update_fact("u1", "pregnancy_week", "21", 0.5)
    assert kept.value == "20"

    replaced = repo.save_or_update_fact("u1", "pregnancy_week", "22", 0.9)
    assert replaced.value == "22"
    assert replaced.confidence == 0.9


def test_facts_ordered_by_key(repo):
    repo.save_or_update_fact("u1", "pregnancy_week", "20", 0.8)
    repo.save_or_update_fact("u1", "due_date", "March", 0.7)
    repo.save_or_update_fact("u2", "diet", "vegan", 0.9)

    assert [f.key for f in repo.get_user_facts("u1")] == ["due_date", "pregnancy_week"]


def test_recent_symptoms_newest_first(repo):
    repo.save_symptom("u1", "nausea", "so queasy", "mild", "daily", "today", [])
    repo.save_symptom("u1", "headache", "bad headache", "severe", "constant", "yesterday", ["vision_changes"])

    symptoms = repo.get_recent_symptoms("u1", limit=10)

    assert [s["symptom_type"] for s in symptoms] == ["headache", "nausea"]
    assert symptoms[0]["associated_symptoms"] == ["vision_changes"]
    assert symptoms[0]["is_resolved"] is False


def test_system_settings(repo):
    assert repo.get_system_setting("ai_name") is None

    repo.set_system_setting("ai_name", "Luna")
    repo.set_system_setting("ai_name", "Nova")

    assert repo.get_system_setting("ai_name") == "Nova"


def test_sqlalchemy_errors_become_database_errors(repo):
    with repo.db.get_session() as session:
        session.execute(text("DROP TABLE chat_messages"))

    with pytest.raises(DatabaseError):
        repo.save_message("u1", "user", "hello")


def test_check_connection(repo):
    assert repo.db.check_connection()
