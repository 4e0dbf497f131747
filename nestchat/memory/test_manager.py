import threading

import pytest

from nestchat.memory.conversation import Message, UserFact
from nestchat.memory.manager import MemoryManager


def test_window_keeps_most_recent_in_order():
    manager = MemoryManager(short_term_size=3)
    for role, text in [
        ("user", "Message 1"),
        ("assistant", "Response 1"),
        ("user", "Message 2"),
        ("assistant", "Response 2"),
        ("user", "Message 3"),
    ]:
        manager.add_message("u1", Message(role, text))

    retained = manager.get_short_term_memory("u1")
    assert [m.content for m in retained] == ["Message 2", "Response 2", "Message 3"]


def test_unknown_user_reads_empty():
    manager = MemoryManager()
    assert manager.get_short_term_memory("ghost") == []
    assert manager.get_facts("ghost") == []
    assert manager.get_fact_by_key("ghost", "pregnancy_week") is None


def test_returned_window_is_a_copy():
    manager = MemoryManager()
    manager.add_message("u1", Message("user", "hi"))

    snapshot = manager.get_short_term_memory("u1")
    snapshot.append(Message("user", "injected"))
    manager.add_message("u1", Message("assistant", "hello"))

    assert len(snapshot) == 2
    assert [m.content for m in manager.get_short_term_memory("u1")] == ["hi", "hello"]


def test_clear_short_term_memory_keeps_facts():
    manager = MemoryManager()
    manager.add_message("u1", Message("user", "hi"))
    manager.add_fact("u1", UserFact("diet", "vegetarian", 0.9))

    manager.clear_short_term_memory("u1")

    assert manager.get_short_term_memory("u1") == []
    assert manager.get_fact_by_key("u1", "diet").value == "vegetarian"


@pytest.mark.parametrize("first, second, expected", [
    (0.8, 0.5, "20"),
    (0.8, 0.8, "20"),
    (0.5, 0.8, "21"),
])
def test_fact_update_is_monotonic(first, second, expected):
    manager = MemoryManager()
    manager.add_fact("u1", UserFact("pregnancy_week", "20", first))
    manager.add_fact("u1", UserFact("pregnancy_week", "21", second))

    assert manager.get_fact_by_key("u1", "pregnancy_week").value == expected


def test_facts_are_sorted_and_removable():
    manager = MemoryManager()
    manager.add_fact("u1", UserFact("pregnancy_week", "20", 0.8))
    manager.add_fact("u1", UserFact("due_date", "March", 0.7))

    assert [f.key for f in manager.get_facts("u1")] == ["due_date", "pregnancy_week"]

    manager.remove_fact("u1", "due_date")
    assert [f.key for f in manager.get_facts("u1")] == ["pregnancy_week"]


def test_rejects_empty_window():
    with pytest.raises(ValueError):
        MemoryManager(short_term_size=0)


def test_concurrent_writers_respect_window():
    manager = MemoryManager(short_term_size=10)

    def write(worker):
        for i in range(50):
            manager.add_message("shared", Message("user", f"{worker}-{i}"))

    threads = [threading.Thread(target=write, args=(w,)) for w in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(manager.get_short_term_memory("shared")) == 10
    assert manager.get_stats()["messages"] == 10
