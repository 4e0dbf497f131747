from nestchat.memory.state import ConversationStateManager


def test_new_user_has_no_concern():
    states = ConversationStateManager()
    state = states.get_state("u1")

    assert state.primary_concern == ""
    assert state.follow_up_count == 0
    assert not states.should_refocus("u1")


def test_setting_concern_restarts_follow_ups():
    states = ConversationStateManager()
    states.set_primary_concern("u1", "headaches")
    states.increment_follow_up("u1")
    states.set_primary_concern("u1", "back pain")

    state = states.get_state("u1")
    assert state.primary_concern == "back pain"
    assert state.follow_up_count == 0


def test_refocus_needs_follow_ups_and_side_topics():
    states = ConversationStateManager()
    states.set_primary_concern("u1", "swollen feet/ankles")
    states.increment_follow_up("u1")
    states.increment_follow_up("u1")
    assert not states.should_refocus("u1")

    states.add_secondary_topic("u1", "what about heartburn")
    assert states.should_refocus("u1")


def test_get_state_returns_copy():
    states = ConversationStateManager()
    states.set_primary_concern("u1", "fatigue")

    snapshot = states.get_state("u1")
    snapshot.secondary_topics.append("mutated")

    assert states.get_state("u1").secondary_topics == []


def test_reset_returns_to_no_concern():
    states = ConversationStateManager()
    states.set_primary_concern("u1", "nausea/morning sickness")
    states.reset("u1")

    assert states.get_state("u1").primary_concern == ""
