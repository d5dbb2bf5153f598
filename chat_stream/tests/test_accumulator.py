from chat_stream.domain.models import ConversationMessage
from chat_stream.streaming.accumulator import ResponseAccumulator


def test_accumulator_collects_deltas():
    acc = ResponseAccumulator()
    for part in ["Hel", "lo"]:
        acc.append(part)
    assert acc.text == "Hello"
    assert acc.delta_count == 2
    assert acc.to_message() == ConversationMessage(role="assistant", content="Hello")


def test_upsert_appends_after_user_message():
    history = [ConversationMessage(role="user", content="hi")]
    acc = ResponseAccumulator()
    acc.append("a")
    updated = acc.upsert_into(history)
    assert [m.role for m in updated] == ["user", "assistant"]
    assert len(history) == 1


def test_upsert_replaces_trailing_assistant_message():
    acc = ResponseAccumulator()
    acc.append("a")
    history = acc.upsert_into([ConversationMessage(role="user", content="hi")])
    acc.append("b")
    history = acc.upsert_into(history)
    assert [m.content for m in history] == ["hi", "ab"]
